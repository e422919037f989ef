from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from app.models.profile import Profile
from app.repositories.base import BaseRepository


class ProfileRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``profiles`` table."""

    async def get_by_id(self, profile_id: UUID) -> Optional[Profile]:
        """Return a single profile by identity id, or ``None``."""
        result = await self._db.execute(
            select(Profile).where(Profile.id == profile_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        profile_id: UUID,
        email: str,
        role: str,
        full_name: Optional[str] = None,
    ) -> Profile:
        """Insert a profile, keeping the existing row if one appeared.

        Two sign-in events for the same identity may both provision; the
        ``ON CONFLICT DO NOTHING`` makes the second one harmless.
        """
        await self._db.execute(
            insert(Profile)
            .values(id=profile_id, email=email, role=role, full_name=full_name)
            .on_conflict_do_nothing(index_elements=[Profile.id])
        )
        result = await self._db.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def list_by_role(self, role: str) -> List[Profile]:
        """Return all profiles with *role*, ordered by name then email."""
        result = await self._db.execute(
            select(Profile)
            .where(Profile.role == role)
            .order_by(Profile.full_name, Profile.email)
        )
        return list(result.scalars().all())
