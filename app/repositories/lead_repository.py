from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, or_, select, update

from app.models.lead import Lead
from app.repositories.base import BaseRepository

# Sortable columns exposed to the lead table
_SORT_COLUMNS = {
    "name": Lead.name,
    "status": Lead.status,
    "created_at": Lead.created_at,
    "updated_at": Lead.updated_at,
    "follow_up_date": Lead.follow_up_date,
}

UNASSIGNED = "unassigned"


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    @staticmethod
    def build_filters(
        agent_id: Optional[UUID] = None,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        agent_filter: Optional[str] = None,
    ) -> list:
        """Build SQLAlchemy filter expressions for lead listings.

        Args:
            agent_id: Scope to leads assigned to this agent (BDA view).
            search: Case-insensitive substring matched against name and
                email, and a plain substring against phone.
            status: Exact status value, or ``None``/``"all"``.
            agent_filter: ``"unassigned"``, an agent id string, or
                ``None``/``"all"`` (admin lead table).

        Returns:
            A list of expressions suitable for ``.where(*filters)``.
        """
        filters = []
        if agent_id is not None:
            filters.append(Lead.assigned_agent_id == agent_id)
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Lead.name.ilike(pattern),
                    Lead.email.ilike(pattern),
                    Lead.phone.contains(search),
                )
            )
        if status and status != "all":
            filters.append(Lead.status == status)
        if agent_filter and agent_filter != "all":
            if agent_filter == UNASSIGNED:
                filters.append(Lead.assigned_agent_id.is_(None))
            else:
                filters.append(Lead.assigned_agent_id == UUID(agent_filter))
        return filters

    async def get_by_id(self, lead_id: UUID) -> Optional[Lead]:
        """Return a single lead by primary key, or ``None``."""
        result = await self._db.execute(select(Lead).where(Lead.id == lead_id))
        return result.scalar_one_or_none()

    async def get_many(self, lead_ids: Iterable[UUID]) -> List[Lead]:
        """Return the leads whose ids are in *lead_ids* (fresh read)."""
        ids = list(lead_ids)
        result = await self._db.execute(
            select(Lead)
            .where(Lead.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find(
        self,
        filters: Sequence[Any] = (),
        *,
        sort_by: str = "updated_at",
        descending: bool = True,
    ) -> List[Lead]:
        """Return leads matching *filters* in the requested order.

        Ties are broken by id so the order is stable between calls.
        """
        column = _SORT_COLUMNS.get(sort_by, Lead.updated_at)
        order = column.desc().nulls_last() if descending else column.asc().nulls_last()
        result = await self._db.execute(
            select(Lead)
            .where(*filters)
            .order_by(order, Lead.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_scheduled(self) -> List[Lead]:
        """Return every assigned lead that carries a follow-up date."""
        result = await self._db.execute(
            select(Lead).where(
                Lead.follow_up_date.is_not(None),
                Lead.assigned_agent_id.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def apply_update(self, lead: Lead, values: Dict[str, Any]) -> None:
        """Write *values* onto a loaded lead and stamp ``updated_at``."""
        for field, value in values.items():
            setattr(lead, field, value)
        lead.updated_at = datetime.now(timezone.utc)

    async def assign(self, lead_ids: Iterable[UUID], agent_id: UUID) -> int:
        """Assign every lead in *lead_ids* to *agent_id*.

        Bulk ``UPDATE`` bypasses ORM events, so ``updated_at`` is set
        explicitly.  Returns the number of rows touched.
        """
        result = await self._db.execute(
            update(Lead)
            .where(Lead.id.in_(list(lead_ids)))
            .values(
                assigned_agent_id=agent_id,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def replace_all(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Delete every lead and insert *rows* in the current transaction."""
        await self._db.execute(delete(Lead))
        leads = [Lead(**row) for row in rows]
        self._db.add_all(leads)
        await self._db.flush()
        return len(leads)
