"""Tests for the session/role resolver and the session registry."""

import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import AuthError, ProfileFetchTimeoutError, StoreError
from app.schemas.common import AuthState, UserRole
from app.services.auth_provider import AuthEvent
from app.services.session_registry import SessionRegistry
from app.services.session_resolver import SessionResolver
from tests.fakes import PASSWORD, FakeAuthProvider, make_session

ADMIN_EMAIL = "admin@example.com"


def unreachable_store(error):
    """A session factory whose connection attempt raises *error*."""

    @asynccontextmanager
    async def factory():
        raise error
        yield  # pragma: no cover

    return factory


def build_resolver(provider, session_factory, timeout=1.0):
    return SessionResolver(
        provider,
        session_factory,
        admin_email=ADMIN_EMAIL,
        profile_timeout=timeout,
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_queries_provider_exactly_once(self, session_factory):
        provider = FakeAuthProvider()
        resolver = build_resolver(provider, session_factory)

        await resolver.start()
        await resolver.start()

        assert provider.get_session_calls == 1
        assert len(provider.listeners) == 1
        assert resolver.snapshot.state == AuthState.unauthenticated

    @pytest.mark.asyncio
    async def test_existing_session_resolves_role(
        self, session_factory, profile_store
    ):
        session = make_session("lead@x.test")
        profile_store.add(session.user_id, session.email, "admin")
        resolver = build_resolver(FakeAuthProvider(current=session), session_factory)

        snapshot = await resolver.start()

        assert snapshot.state == AuthState.authenticated
        assert snapshot.is_admin and not snapshot.is_bda
        assert snapshot.identity.email == "lead@x.test"
        assert snapshot.identity.role == UserRole.admin

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, session_factory):
        provider = FakeAuthProvider()
        resolver = build_resolver(provider, session_factory)
        await resolver.start()
        await resolver.stop()
        assert provider.listeners == []


class TestLogin:
    @pytest.mark.asyncio
    async def test_known_profile(self, session_factory, profile_store):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        snapshot = await resolver.login("sara@x.test", PASSWORD)

        assert snapshot.state == AuthState.authenticated
        assert snapshot.role == UserRole.bda
        assert profile_store.provisioned == []

    @pytest.mark.asyncio
    async def test_sign_in_event_and_login_share_one_lookup(
        self, session_factory, profile_store
    ):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        await resolver.login("sara@x.test", PASSWORD)

        assert profile_store.lookups == 1

    @pytest.mark.asyncio
    async def test_missing_profile_is_provisioned_as_bda(
        self, session_factory, profile_store
    ):
        session = make_session("new@x.test")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        snapshot = await resolver.login("new@x.test", PASSWORD)

        assert snapshot.role == UserRole.bda
        assert profile_store.provisioned == [(uuid.UUID(session.user_id), "bda")]

    @pytest.mark.asyncio
    async def test_admin_email_is_provisioned_as_admin(
        self, session_factory, profile_store
    ):
        session = make_session("Admin@Example.com")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        snapshot = await resolver.login("Admin@Example.com", PASSWORD)

        assert snapshot.role == UserRole.admin
        assert snapshot.is_admin

    @pytest.mark.asyncio
    async def test_bad_credentials(self, session_factory):
        resolver = build_resolver(FakeAuthProvider(), session_factory)
        await resolver.start()

        with pytest.raises(AuthError):
            await resolver.login("ghost@x.test", "wrong")

        snapshot = resolver.snapshot
        assert snapshot.state == AuthState.unauthenticated
        assert snapshot.identity is None
        assert snapshot.last_error == "Invalid login credentials"

    @pytest.mark.asyncio
    async def test_profile_timeout_ends_unauthenticated(
        self, session_factory, profile_store
    ):
        session = make_session("slow@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        profile_store.delay = 1.0
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory, timeout=0.05)
        await resolver.start()

        with pytest.raises(ProfileFetchTimeoutError):
            await resolver.login("slow@x.test", PASSWORD)

        snapshot = resolver.snapshot
        assert snapshot.state == AuthState.unauthenticated
        assert snapshot.role is None
        assert "exceeded" in snapshot.last_error

    @pytest.mark.asyncio
    async def test_sign_out_during_lookup_wins(self, session_factory, profile_store):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        profile_store.delay = 0.2
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        login = asyncio.create_task(resolver.login("sara@x.test", PASSWORD))
        await asyncio.sleep(0.02)
        assert resolver.snapshot.state == AuthState.authenticated_role_pending
        provider.emit(AuthEvent.signed_out, None)

        with pytest.raises(AuthError):
            await login
        assert resolver.snapshot.state == AuthState.unauthenticated
        assert resolver.snapshot.role is None

    @pytest.mark.asyncio
    async def test_newer_identity_replaces_pending_lookup(
        self, session_factory, profile_store
    ):
        first = make_session("first@x.test")
        second = make_session("second@x.test")
        profile_store.add(first.user_id, first.email, "admin")
        profile_store.add(second.user_id, second.email, "bda")
        profile_store.delay = 0.1
        provider = FakeAuthProvider(accounts={first.email: first})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()

        login = asyncio.create_task(resolver.login("first@x.test", PASSWORD))
        await asyncio.sleep(0.02)
        provider.emit(AuthEvent.signed_in, second)

        with pytest.raises(AuthError):
            await login
        snapshot = await resolver.wait_until_resolved()
        assert snapshot.identity.email == "second@x.test"
        assert snapshot.role == UserRole.bda


class TestStoreFailures:
    """A failed role lookup clears the identity instead of leaving it pending."""

    @pytest.mark.asyncio
    async def test_driver_error_on_start(self):
        session = make_session("sara@x.test")
        provider = FakeAuthProvider(current=session)
        resolver = build_resolver(
            provider, unreachable_store(ConnectionRefusedError("connection refused"))
        )

        snapshot = await resolver.start()

        assert snapshot.state == AuthState.unauthenticated
        assert snapshot.identity is None
        assert not snapshot.is_authenticated
        assert "Profile lookup failed" in snapshot.last_error

    @pytest.mark.asyncio
    async def test_driver_error_during_login(self):
        session = make_session("sara@x.test")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, unreachable_store(OSError("no route")))
        await resolver.start()

        with pytest.raises(StoreError):
            await resolver.login("sara@x.test", PASSWORD)

        assert resolver.snapshot.state == AuthState.unauthenticated
        assert resolver.snapshot.identity is None

    @pytest.mark.asyncio
    async def test_database_error_during_login(self):
        session = make_session("sara@x.test")
        provider = FakeAuthProvider(accounts={session.email: session})
        error = OperationalError("SELECT", {}, Exception("database is down"))
        resolver = build_resolver(provider, unreachable_store(error))
        await resolver.start()

        with pytest.raises(StoreError) as excinfo:
            await resolver.login("sara@x.test", PASSWORD)

        assert excinfo.value.detail == "Profile lookup failed"
        snapshot = resolver.snapshot
        assert snapshot.state == AuthState.unauthenticated
        assert snapshot.role is None
        assert snapshot.last_error == "Profile lookup failed"


class TestProviderEvents:
    @pytest.mark.asyncio
    async def test_token_refresh_keeps_role(self, session_factory, profile_store):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        await resolver.start()
        await resolver.login("sara@x.test", PASSWORD)
        lookups = profile_store.lookups

        refreshed = make_session(
            "sara@x.test", uuid.UUID(session.user_id), token="t2"
        )
        provider.emit(AuthEvent.token_refreshed, refreshed)

        snapshot = resolver.snapshot
        assert snapshot.state == AuthState.authenticated
        assert snapshot.session.access_token == "t2"
        assert snapshot.role == UserRole.bda
        assert profile_store.lookups == lookups

    @pytest.mark.asyncio
    async def test_identity_and_role_are_published_together(
        self, session_factory, profile_store
    ):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        provider = FakeAuthProvider(accounts={session.email: session})
        resolver = build_resolver(provider, session_factory)
        seen = []
        resolver.subscribe_state(seen.append)
        await resolver.start()
        await resolver.login("sara@x.test", PASSWORD)
        await resolver.logout()

        states = [snapshot.state for snapshot in seen]
        assert states == [
            AuthState.unauthenticated,
            AuthState.authenticating,
            AuthState.authenticated_role_pending,
            AuthState.authenticated,
            AuthState.unauthenticated,
        ]
        for snapshot in seen:
            if snapshot.role is not None:
                assert snapshot.session is not None
            if snapshot.state == AuthState.authenticated:
                assert snapshot.role is not None

    @pytest.mark.asyncio
    async def test_unsubscribed_listener_is_not_called(self, session_factory):
        resolver = build_resolver(FakeAuthProvider(), session_factory)
        seen = []
        unsubscribe = resolver.subscribe_state(seen.append)
        unsubscribe()
        await resolver.start()
        assert seen == []


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_never_raises(self, session_factory, profile_store):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        provider = FakeAuthProvider(
            accounts={session.email: session},
            sign_out_error=AuthError("network down"),
        )
        resolver = build_resolver(provider, session_factory)
        await resolver.start()
        await resolver.login("sara@x.test", PASSWORD)

        await resolver.logout()

        assert provider.sign_out_calls == 1
        assert resolver.snapshot.state == AuthState.unauthenticated
        assert not resolver.snapshot.is_authenticated


class TestSessionRegistry:
    @pytest.fixture
    def accounts(self, profile_store):
        session = make_session("sara@x.test")
        profile_store.add(session.user_id, session.email, "bda")
        return {session.email: session}

    @pytest.fixture
    def providers(self):
        return []

    @pytest.fixture
    def registry(self, accounts, providers, session_factory):
        async def provider_factory():
            provider = FakeAuthProvider(accounts=accounts)
            providers.append(provider)
            return provider

        return SessionRegistry(
            provider_factory, session_factory, admin_email=ADMIN_EMAIL
        )

    @pytest.mark.asyncio
    async def test_open_registers_resolver(self, registry):
        token, snapshot = await registry.open("sara@x.test", PASSWORD)

        assert snapshot.role == UserRole.bda
        assert len(registry) == 1
        assert registry.get(token).snapshot == snapshot
        assert registry.get("unknown") is None

    @pytest.mark.asyncio
    async def test_tokens_are_unique_per_login(self, registry):
        first, _ = await registry.open("sara@x.test", PASSWORD)
        second, _ = await registry.open("sara@x.test", PASSWORD)
        assert first != second
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_failed_open_registers_nothing(self, registry, providers):
        with pytest.raises(AuthError):
            await registry.open("sara@x.test", "wrong")
        assert len(registry) == 0
        assert providers[0].listeners == []

    @pytest.mark.asyncio
    async def test_close_signs_out(self, registry, providers):
        token, _ = await registry.open("sara@x.test", PASSWORD)

        await registry.close(token)
        await registry.close(token)

        assert registry.get(token) is None
        assert providers[0].sign_out_calls == 1

    @pytest.mark.asyncio
    async def test_close_all(self, registry, providers):
        await registry.open("sara@x.test", PASSWORD)
        await registry.open("sara@x.test", PASSWORD)

        await registry.close_all()

        assert len(registry) == 0
        assert all(provider.listeners == [] for provider in providers)

    @pytest.mark.asyncio
    async def test_remote_sign_out_drops_session(self, registry, providers):
        token, _ = await registry.open("sara@x.test", PASSWORD)

        providers[0].emit(AuthEvent.signed_out, None)

        assert registry.get(token) is None
        assert len(registry) == 0
        await asyncio.sleep(0)
        assert providers[0].listeners == []

    @pytest.mark.asyncio
    async def test_failed_refresh_drops_session(self, registry, providers):
        token, _ = await registry.open("sara@x.test", PASSWORD)
        await registry.open("sara@x.test", PASSWORD)

        providers[0].emit(AuthEvent.token_refreshed, None)
        await registry.close_all()

        assert registry.get(token) is None
        assert providers[0].sign_out_calls == 0
        assert all(provider.listeners == [] for provider in providers)

    @pytest.mark.asyncio
    async def test_close_after_remote_sign_out(self, registry, providers):
        token, _ = await registry.open("sara@x.test", PASSWORD)
        providers[0].emit(AuthEvent.user_deleted, None)

        await registry.close(token)

        assert providers[0].sign_out_calls == 0
