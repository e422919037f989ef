"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from app.repositories.lead_repository import LeadRepository
from app.repositories.profile_repository import ProfileRepository

__all__ = [
    "LeadRepository",
    "ProfileRepository",
]
