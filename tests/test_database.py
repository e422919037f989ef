from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal, engine


class TestEngine:
    def test_pool_is_sized_from_settings(self):
        assert engine.sync_engine.pool.size() == settings.DB_POOL_SIZE
        assert engine.sync_engine.pool._max_overflow == settings.DB_MAX_OVERFLOW
        assert engine.sync_engine.pool._recycle == settings.DB_POOL_RECYCLE_SECONDS

    def test_sessions_keep_rows_after_commit(self):
        assert AsyncSessionLocal.class_ is AsyncSession
        assert AsyncSessionLocal.kw["expire_on_commit"] is False
