import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotAuthenticatedError, PermissionDeniedError
from app.repositories.lead_repository import LeadRepository
from app.repositories.profile_repository import ProfileRepository
from app.schemas.common import AuthState, UserRole
from app.services.follow_up_poller import FollowUpReminderPoller
from app.services.lead_service import LeadService
from app.services.session_registry import SessionRegistry
from app.services.session_resolver import Identity, SessionResolver

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_lead_repo(
    db: AsyncSession = Depends(get_db),
) -> LeadRepository:
    return LeadRepository(db)


async def get_profile_repo(
    db: AsyncSession = Depends(get_db),
) -> ProfileRepository:
    return ProfileRepository(db)


# ---------------------------------------------------------------------------
# Application-scoped objects created in the lifespan
# ---------------------------------------------------------------------------


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


def get_follow_up_poller(request: Request) -> Optional[FollowUpReminderPoller]:
    return getattr(request.app.state, "follow_up_poller", None)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_lead_service(
    poller: Optional[FollowUpReminderPoller] = Depends(get_follow_up_poller),
) -> LeadService:
    """Build a :class:`LeadService` that wakes the reminder poller on writes."""
    return LeadService(poller=poller)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError("Missing bearer token")
    return credentials.credentials


async def get_current_resolver(
    token: str = Depends(get_bearer_token),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResolver:
    resolver = registry.get(token)
    if resolver is None:
        raise NotAuthenticatedError("Unknown or expired session")
    return resolver


async def get_current_identity(
    resolver: SessionResolver = Depends(get_current_resolver),
) -> Identity:
    """The signed-in identity with a resolved role.

    A request that arrives while the role lookup is still running waits
    for it; no role-gated data is served before the role is known.
    """
    snapshot = resolver.snapshot
    if snapshot.state == AuthState.authenticated_role_pending:
        snapshot = await resolver.wait_until_resolved()
    identity = snapshot.identity
    if (
        snapshot.state != AuthState.authenticated
        or identity is None
        or identity.role is None
    ):
        raise NotAuthenticatedError(snapshot.last_error or "Session is no longer valid")
    return identity


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    if identity.role != UserRole.admin:
        logger.warning("Admin-only request rejected for %s", identity.email)
        raise PermissionDeniedError("Administrator role required")
    return identity
