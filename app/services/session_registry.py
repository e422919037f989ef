import asyncio
import logging
import secrets
from typing import Awaitable, Callable, Dict, Optional, Set, Tuple

from app.core.exceptions import LeadDashboardError
from app.schemas.common import AuthState
from app.services.auth_provider import AuthProvider
from app.services.session_resolver import ResolverSnapshot, SessionResolver

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], Awaitable[AuthProvider]]


class SessionRegistry:
    """Holds one :class:`SessionResolver` per signed-in dashboard client.

    Clients receive an opaque registry token at login and present it as
    a bearer token afterwards.  The token is ours, not the provider's, so
    it survives provider token refreshes.  A resolver that ends up signed
    out (remotely revoked, failed refresh) is dropped and stopped.

    Parameters:
        provider_factory: Async callable returning a fresh
            :class:`AuthProvider` for each login.
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        session_factory,
        *,
        admin_email: Optional[str] = None,
        profile_timeout: Optional[float] = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._session_factory = session_factory
        self._admin_email = admin_email
        self._profile_timeout = profile_timeout
        self._resolvers: Dict[str, SessionResolver] = {}
        self._stopping: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._resolvers)

    async def open(self, email: str, password: str) -> Tuple[str, ResolverSnapshot]:
        """Sign in with a fresh resolver and register it under a new token."""
        provider = await self._provider_factory()
        resolver = SessionResolver(
            provider,
            self._session_factory,
            admin_email=self._admin_email,
            profile_timeout=self._profile_timeout,
        )
        await resolver.start()
        try:
            snapshot = await resolver.login(email, password)
        except LeadDashboardError:
            await resolver.stop()
            raise

        token = secrets.token_urlsafe(32)
        self._resolvers[token] = resolver
        resolver.subscribe_state(
            lambda snapshot: self._evict_if_signed_out(token, resolver, snapshot)
        )
        logger.info("Opened dashboard session for %s (%s)", email, snapshot.role)
        return token, snapshot

    def get(self, token: str) -> Optional[SessionResolver]:
        """Return the resolver for *token*, or ``None`` if unknown."""
        return self._resolvers.get(token)

    async def close(self, token: str) -> None:
        """Sign out and forget the resolver for *token* (best-effort)."""
        resolver = self._resolvers.pop(token, None)
        if resolver is None:
            return
        await resolver.logout()
        await resolver.stop()

    async def close_all(self) -> None:
        """Stop following every session; used at application shutdown."""
        resolvers = list(self._resolvers.values())
        self._resolvers.clear()
        for resolver in resolvers:
            await resolver.stop()
        if self._stopping:
            await asyncio.wait(set(self._stopping))
        if resolvers:
            logger.info("Closed %d dashboard session(s)", len(resolvers))

    def _evict_if_signed_out(
        self, token: str, resolver: SessionResolver, snapshot: ResolverSnapshot
    ) -> None:
        if snapshot.state != AuthState.unauthenticated:
            return
        if self._resolvers.get(token) is not resolver:
            return
        del self._resolvers[token]
        logger.info(
            "Dropped dashboard session: %s", snapshot.last_error or "signed out"
        )
        task = asyncio.get_running_loop().create_task(resolver.stop())
        self._stopping.add(task)
        task.add_done_callback(self._stopping.discard)
