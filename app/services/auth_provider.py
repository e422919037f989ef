"""Authentication collaborator boundary.

The rest of the application talks to :class:`AuthProvider`; the
Supabase client and its error shapes are translated here, once, into
:class:`AuthSession`, :class:`AuthEvent` and ``AuthError``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from supabase import AsyncClient, acreate_client
from supabase_auth.errors import AuthError as SupabaseAuthError

from app.core.config import settings
from app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    initial_session = "INITIAL_SESSION"
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"
    user_updated = "USER_UPDATED"
    user_deleted = "USER_DELETED"


@dataclass(frozen=True)
class AuthSession:
    """An authenticated session as reported by the provider."""

    user_id: str
    email: str
    access_token: str
    display_name: Optional[str] = None


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]
Unsubscribe = Callable[[], None]


class AuthProvider(ABC):
    """Exchange credentials and report session changes."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange a credential for a session; raise ``AuthError`` on failure."""

    @abstractmethod
    async def get_current_session(self) -> Optional[AuthSession]:
        """Return the session currently held by the provider, if any."""

    @abstractmethod
    def subscribe(self, listener: AuthListener) -> Unsubscribe:
        """Register *listener* for session changes; return the unsubscriber."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Invalidate the provider session; raise ``AuthError`` on failure."""


class SupabaseAuthProvider(AuthProvider):
    """:class:`AuthProvider` backed by a Supabase ``AsyncClient``.

    Each instance owns its own client, so each signed-in dashboard user
    gets an independent auth state and refresh cycle.
    """

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    @classmethod
    async def create(
        cls, url: Optional[str] = None, key: Optional[str] = None
    ) -> "SupabaseAuthProvider":
        url = url or settings.SUPABASE_URL
        key = key or settings.SUPABASE_KEY
        if not url or not key:
            raise AuthError("SUPABASE_URL and SUPABASE_KEY must be configured")
        client = await acreate_client(url, key)
        return cls(client)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except SupabaseAuthError as exc:
            logger.warning("Sign-in rejected for %s: %s", email, exc.message)
            raise AuthError(exc.message or "Invalid credentials") from exc
        session = _translate_session(response.session)
        if session is None:
            raise AuthError("Sign-in returned no session")
        return session

    async def get_current_session(self) -> Optional[AuthSession]:
        try:
            session = await self._client.auth.get_session()
        except SupabaseAuthError as exc:
            raise AuthError(exc.message or "Session check failed") from exc
        return _translate_session(session)

    def subscribe(self, listener: AuthListener) -> Unsubscribe:
        def _on_change(event: str, session: Any) -> None:
            try:
                translated = AuthEvent(event)
            except ValueError:
                logger.debug("Ignoring auth event %s", event)
                return
            listener(translated, _translate_session(session))

        subscription = self._client.auth.on_auth_state_change(_on_change)
        return subscription.unsubscribe

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except SupabaseAuthError as exc:
            raise AuthError(exc.message or "Sign-out failed") from exc


def _translate_session(session: Any) -> Optional[AuthSession]:
    """Convert a Supabase ``Session`` into :class:`AuthSession`."""
    if session is None or session.user is None:
        return None
    user = session.user
    metadata = user.user_metadata or {}
    return AuthSession(
        user_id=str(user.id),
        email=user.email or "",
        access_token=session.access_token,
        display_name=metadata.get("full_name") or metadata.get("name"),
    )


async def supabase_provider_factory() -> AuthProvider:
    """Default factory used by the session registry."""
    return await SupabaseAuthProvider.create()
