"""Async engine and session factory for the hosted Postgres.

``AsyncSessionLocal`` is shared by request handlers (through
:func:`get_db`), the session resolver's profile lookups and the
follow-up reminder task, so the pool is sized for all three.
"""

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from app.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    poolclass=AsyncAdaptedQueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    # Hosted Postgres drops idle connections
    pool_pre_ping=True,
    pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
)

# Rows stay readable after commit; services re-fetch explicitly when needed
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """Yield one ``AsyncSession`` per request."""
    async with AsyncSessionLocal() as session:
        yield session
