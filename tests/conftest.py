from contextlib import asynccontextmanager
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.rate_limit import limiter
from app.main import app
from tests.fakes import FakeProfileRepository, FakeProfileStore, make_lead

# Endpoint tests issue many logins; throttling is covered by slowapi itself.
limiter.enabled = False


@pytest.fixture
def profile_store(monkeypatch) -> FakeProfileStore:
    """A profile store wired into the session resolver."""
    store = FakeProfileStore()
    monkeypatch.setattr(
        "app.services.session_resolver.ProfileRepository", FakeProfileRepository
    )
    return store


@pytest.fixture
def session_factory(profile_store):
    """An ``AsyncSessionLocal`` stand-in that yields the profile store."""

    @asynccontextmanager
    async def factory():
        yield profile_store

    return factory


@pytest.fixture
def lead_factory():
    return make_lead


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Yield an ``httpx.AsyncClient`` wired to the FastAPI app.

    Dependency overrides set by a test are cleared afterwards.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
