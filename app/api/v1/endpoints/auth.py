from fastapi import APIRouter, Depends, Request

from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas.auth import IdentityOut, LoginRequest, LoginResponse, SessionStateOut
from app.schemas.common import SuccessResponse
from app.services.session_registry import SessionRegistry
from app.services.session_resolver import ResolverSnapshot, SessionResolver
from app.api.deps import get_bearer_token, get_current_resolver, get_session_registry

router = APIRouter(prefix="/auth", tags=["Auth"])


def session_out(snapshot: ResolverSnapshot) -> SessionStateOut:
    identity = snapshot.identity
    return SessionStateOut(
        state=snapshot.state,
        identity=(
            IdentityOut(
                id=identity.id,
                email=identity.email,
                display_name=identity.display_name,
                role=identity.role,
            )
            if identity is not None
            else None
        ),
        is_authenticated=snapshot.is_authenticated,
        is_admin=snapshot.is_admin,
        is_bda=snapshot.is_bda,
        last_error=snapshot.last_error,
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> LoginResponse:
    """Sign in and resolve the user's role.

    Rate-limited per IP.  The returned ``access_token`` is the bearer
    token for every other endpoint.
    """
    token, snapshot = await registry.open(credentials.email, credentials.password)
    return LoginResponse(access_token=token, session=session_out(snapshot))


@router.get("/session", response_model=SessionStateOut)
async def current_session(
    resolver: SessionResolver = Depends(get_current_resolver),
) -> SessionStateOut:
    """Current auth state, including a pending role lookup or its failure."""
    return session_out(resolver.snapshot)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    token: str = Depends(get_bearer_token),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SuccessResponse:
    await registry.close(token)
    return SuccessResponse()
