from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.api.v1.router import router as api_v1_router
from app.core.exceptions import (
    AgentNotFoundError,
    AuthError,
    ImportValidationError,
    LeadNotFoundError,
    NotAuthenticatedError,
    PermissionDeniedError,
    ProfileFetchTimeoutError,
    ProfileNotFoundError,
    StoreError,
)
from app.core.config import settings as app_settings
from app.core.rate_limit import limiter
from app.core.database import AsyncSessionLocal
from app.services.auth_provider import supabase_provider_factory
from app.services.follow_up_poller import FollowUpReminderPoller
from app.services.session_registry import SessionRegistry

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the session registry and the follow-up reminder task."""
    registry = SessionRegistry(supabase_provider_factory, AsyncSessionLocal)
    poller = FollowUpReminderPoller(AsyncSessionLocal)
    app.state.session_registry = registry
    app.state.follow_up_poller = poller

    poller.start()
    logger.info("Background follow-up reminder task scheduled")
    yield
    # Shutdown: cancel the reminder task and drop every tracked session
    await poller.stop()
    await registry.close_all()


app = FastAPI(
    title="Lead Dashboard",
    description="Role-based lead tracking for admins and business development agents",
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    logger.warning("Authentication failed: %s", exc.detail)
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "type": "auth_error"},
    )


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "type": "not_authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    logger.warning("Permission denied on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=403,
        content={"detail": exc.detail, "type": "permission_denied"},
    )


@app.exception_handler(ProfileNotFoundError)
async def profile_not_found_handler(request: Request, exc: ProfileNotFoundError):
    logger.warning("Profile not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "profile_not_found"},
    )


@app.exception_handler(ProfileFetchTimeoutError)
async def profile_timeout_handler(request: Request, exc: ProfileFetchTimeoutError):
    logger.error("Profile lookup timed out: %s", exc.detail)
    return JSONResponse(
        status_code=504,
        content={"detail": exc.detail, "type": "profile_fetch_timeout"},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "store_error"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Data store unavailable", "type": "store_error"},
    )


@app.exception_handler(ImportValidationError)
async def import_validation_handler(request: Request, exc: ImportValidationError):
    logger.warning("CSV import rejected: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "import_validation_error"},
    )


@app.exception_handler(LeadNotFoundError)
async def lead_not_found_handler(request: Request, exc: LeadNotFoundError):
    logger.warning("Lead not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "lead_not_found"},
    )


@app.exception_handler(AgentNotFoundError)
async def agent_not_found_handler(request: Request, exc: AgentNotFoundError):
    logger.warning("Agent not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "agent_not_found"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_errors(exc),
            "type": "validation_error",
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with any non-JSON ``ctx`` values stringified."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        error.pop("input", None)
        errors.append(error)
    return errors


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
