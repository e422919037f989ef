import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Thin base class that holds the database session.

    Every concrete repository receives an ``AsyncSession`` at
    construction time so that multiple repositories can share the same
    unit-of-work within a single request.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self._db.flush()

    async def commit(self) -> None:
        """Commit the current transaction.

        A failed commit is rolled back and surfaced as ``StoreError`` so
        that no partial write survives.
        """
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            logger.error("Commit failed, rolling back: %s", exc)
            await self._db.rollback()
            raise StoreError("Failed to save changes") from exc

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        await self._db.rollback()
