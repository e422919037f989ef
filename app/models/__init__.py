from app.models.base import Base
from app.models.lead import Lead
from app.models.profile import Profile

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Lead",
    "Profile",
]
