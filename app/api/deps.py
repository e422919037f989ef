"""API-layer dependency functions.

Re-exports all dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.dependencies import (
    # Repository factories
    get_lead_repo,
    get_profile_repo,
    # Application state
    get_session_registry,
    get_follow_up_poller,
    # Service factories
    get_lead_service,
    # Authentication
    get_bearer_token,
    get_current_resolver,
    get_current_identity,
    require_admin,
)

__all__ = [
    "get_lead_repo",
    "get_profile_repo",
    "get_session_registry",
    "get_follow_up_poller",
    "get_lead_service",
    "get_bearer_token",
    "get_current_resolver",
    "get_current_identity",
    "require_admin",
]
