"""Resolve an authentication session into an identity and its role.

The resolver is an explicit object owned by whoever needs auth state
(the session registry on the server).  Its observable value is an
immutable :class:`ResolverSnapshot`; identity and role are always
published together, so a reader never sees one without the other.

Events can overlap: a sign-in notification may arrive while the initial
session check or a manual login is still running.  Every event bumps a
generation counter, and a role lookup only publishes its outcome if no
newer event has happened since it started.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.constants import DEFAULT_ROLE
from app.core.exceptions import (
    AuthError,
    LeadDashboardError,
    ProfileFetchTimeoutError,
    ProfileNotFoundError,
    StoreError,
)
from app.repositories.profile_repository import ProfileRepository
from app.schemas.common import AuthState, UserRole
from app.services.auth_provider import (
    AuthEvent,
    AuthProvider,
    AuthSession,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

_SIGNED_OUT_EVENTS = frozenset({AuthEvent.signed_out, AuthEvent.user_deleted})


@dataclass(frozen=True)
class Identity:
    """The signed-in user. ``role`` is ``None`` while the lookup is pending."""

    id: str
    email: str
    display_name: Optional[str] = None
    role: Optional[UserRole] = None


@dataclass(frozen=True)
class ResolverSnapshot:
    state: AuthState
    session: Optional[AuthSession] = None
    role: Optional[UserRole] = None
    last_error: Optional[str] = None

    @property
    def identity(self) -> Optional[Identity]:
        if self.session is None:
            return None
        return Identity(
            id=self.session.user_id,
            email=self.session.email,
            display_name=self.session.display_name,
            role=self.role,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_bda(self) -> bool:
        return self.role == UserRole.bda


StateListener = Callable[[ResolverSnapshot], None]


class SessionResolver:
    """Session/role state machine for one dashboard client."""

    def __init__(
        self,
        provider: AuthProvider,
        session_factory,
        *,
        admin_email: Optional[str] = None,
        profile_timeout: Optional[float] = None,
    ) -> None:
        self._provider = provider
        self._session_factory = session_factory
        self._admin_email = (
            admin_email if admin_email is not None else settings.ADMIN_EMAIL
        )
        self._profile_timeout = (
            profile_timeout
            if profile_timeout is not None
            else settings.PROFILE_FETCH_TIMEOUT_SECONDS
        )

        self._snapshot = ResolverSnapshot(AuthState.idle)
        self._listeners: List[StateListener] = []
        self._generation = 0
        self._role_task: Optional[asyncio.Task] = None
        self._role_task_user: Optional[str] = None
        self._role_task_generation = -1
        self._last_failure: Optional[LeadDashboardError] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._started = False

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ResolverSnapshot:
        return self._snapshot

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot; return the unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ResolverSnapshot:
        """Check for an existing session once, then follow provider events."""
        if self._started:
            return self._snapshot
        self._started = True

        generation = self._next_generation()
        try:
            session = await self._provider.get_current_session()
        except AuthError as exc:
            if generation == self._generation:
                self._fail(exc)
        else:
            if generation == self._generation:
                if session is None:
                    self._publish(ResolverSnapshot(AuthState.unauthenticated))
                else:
                    self._begin_role_resolution(session)

        self._unsubscribe = self._provider.subscribe(self._on_auth_change)
        return await self.wait_until_resolved()

    async def stop(self) -> None:
        """Stop following provider events and drop any pending lookup."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._cancel_role_task()

    async def login(self, email: str, password: str) -> ResolverSnapshot:
        """Sign in and wait for the role; raise on any failure."""
        generation = self._next_generation()
        await self._cancel_role_task()
        self._last_failure = None
        self._publish(ResolverSnapshot(AuthState.authenticating))

        try:
            session = await self._provider.sign_in(email, password)
        except AuthError as exc:
            if generation == self._generation:
                self._fail(exc)
            raise

        task = self._begin_role_resolution(session)
        await asyncio.wait({task})

        snapshot = self._snapshot
        if snapshot.state != AuthState.authenticated:
            raise self._last_failure or AuthError("Sign-in was superseded")
        return snapshot

    async def logout(self) -> None:
        """Invalidate the session. Never raises."""
        self._next_generation()
        await self._cancel_role_task()
        try:
            await self._provider.sign_out()
        except AuthError as exc:
            logger.warning("Sign-out failed, clearing local session: %s", exc.detail)
        except Exception:
            logger.error("Unexpected sign-out failure", exc_info=True)
        self._publish(ResolverSnapshot(AuthState.unauthenticated))

    async def wait_until_resolved(self) -> ResolverSnapshot:
        """Wait for an in-flight role lookup (if any) and return the snapshot."""
        task = self._role_task
        if task is not None and not task.done():
            await asyncio.wait({task})
        return self._snapshot

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------

    def _on_auth_change(
        self, event: AuthEvent, session: Optional[AuthSession]
    ) -> None:
        # Never re-query the provider from here; the event carries the session.
        if event in _SIGNED_OUT_EVENTS or session is None:
            self._next_generation()
            if self._role_task is not None and not self._role_task.done():
                self._role_task.cancel()
            self._publish(ResolverSnapshot(AuthState.unauthenticated))
            return

        current = self._snapshot
        if (
            current.state == AuthState.authenticated
            and current.session is not None
            and current.session.user_id == session.user_id
        ):
            # Token refresh or profile change for a resolved identity
            self._publish(replace(current, session=session))
            return

        self._begin_role_resolution(session)

    # ------------------------------------------------------------------
    # Role resolution
    # ------------------------------------------------------------------

    def _begin_role_resolution(self, session: AuthSession) -> asyncio.Task:
        task = self._role_task
        if (
            task is not None
            and not task.done()
            and self._role_task_user == session.user_id
            and self._role_task_generation == self._generation
        ):
            self._publish(replace(self._snapshot, session=session))
            return task

        if task is not None and not task.done():
            task.cancel()

        generation = self._next_generation()
        self._publish(
            ResolverSnapshot(AuthState.authenticated_role_pending, session=session)
        )
        task = asyncio.get_running_loop().create_task(
            self._resolve_role(session, generation)
        )
        self._role_task = task
        self._role_task_user = session.user_id
        self._role_task_generation = generation
        return task

    async def _resolve_role(self, session: AuthSession, generation: int) -> None:
        try:
            role = await self._lookup_role(session)
        except LeadDashboardError as exc:
            if generation == self._generation:
                self._fail(exc)
            return
        except (ValueError, TypeError) as exc:
            logger.error("Unusable profile data for %s", session.user_id, exc_info=True)
            if generation == self._generation:
                self._fail(StoreError(f"Unusable profile data: {exc}"))
            return
        except Exception as exc:
            # Driver errors (e.g. OSError from asyncpg) bypass SQLAlchemyError
            logger.error("Role lookup failed for %s", session.user_id, exc_info=True)
            if generation == self._generation:
                self._fail(StoreError(f"Profile lookup failed: {exc}"))
            return

        if generation != self._generation:
            logger.debug("Discarding stale role for %s", session.user_id)
            return
        # The session may have been refreshed while the lookup ran
        latest = self._snapshot.session
        if latest is not None and latest.user_id == session.user_id:
            session = latest
        self._publish(
            ResolverSnapshot(AuthState.authenticated, session=session, role=role)
        )

    async def _lookup_role(self, session: AuthSession) -> UserRole:
        try:
            return await asyncio.wait_for(
                self._fetch_role(session.user_id), timeout=self._profile_timeout
            )
        except asyncio.TimeoutError as exc:
            raise ProfileFetchTimeoutError(
                f"Profile lookup exceeded {self._profile_timeout:g}s"
            ) from exc
        except ProfileNotFoundError:
            return await self._provision(session)

    async def _fetch_role(self, user_id: str) -> UserRole:
        try:
            async with self._session_factory() as db:
                profile = await ProfileRepository(db).get_by_id(UUID(user_id))
        except SQLAlchemyError as exc:
            raise StoreError("Profile lookup failed") from exc
        if profile is None:
            raise ProfileNotFoundError(f"No profile for user {user_id}")
        return UserRole(profile.role)

    async def _provision(self, session: AuthSession) -> UserRole:
        role = self._default_role_for(session.email)
        try:
            async with self._session_factory() as db:
                repo = ProfileRepository(db)
                profile = await repo.upsert(
                    UUID(session.user_id),
                    session.email,
                    role.value,
                    full_name=session.display_name,
                )
                await repo.commit()
        except SQLAlchemyError as exc:
            raise StoreError("Profile provisioning failed") from exc
        logger.info(
            "Provisioned profile for %s with role %s", session.email, profile.role
        )
        # An existing row (from a concurrent provision) keeps its role
        return UserRole(profile.role)

    def _default_role_for(self, email: str) -> UserRole:
        if self._admin_email and email.lower() == self._admin_email.lower():
            return UserRole.admin
        return DEFAULT_ROLE

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _cancel_role_task(self) -> None:
        task = self._role_task
        self._role_task = None
        self._role_task_user = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})

    def _fail(self, exc: LeadDashboardError) -> None:
        logger.warning("Session resolution failed: %s", exc.detail)
        self._last_failure = exc
        self._publish(
            ResolverSnapshot(AuthState.unauthenticated, last_error=exc.detail)
        )

    def _publish(self, snapshot: ResolverSnapshot) -> None:
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.error("Auth state listener failed", exc_info=True)
