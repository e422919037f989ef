import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    AgentNotFoundError,
    LeadNotFoundError,
    PermissionDeniedError,
    StoreError,
)
from app.repositories.lead_repository import LeadRepository
from app.repositories.profile_repository import ProfileRepository
from app.schemas.common import LeadSortKey, LeadStatus, SortDirection, UserRole
from app.schemas.lead import LeadOut, LeadUpdate
from app.services.follow_up import dashboard_now
from app.services.follow_up_poller import FollowUpReminderPoller
from app.services.lead_csv import export_leads_csv, parse_leads_csv
from app.services.session_resolver import Identity

logger = logging.getLogger(__name__)


class LeadService:
    """Orchestrates lead reads and writes for both roles.

    Every write follows the same pattern: write, commit, re-read the
    touched rows from the store and return what was read back, so the
    caller only reports success for state the store actually holds.
    All database operations are delegated to injected repositories.
    """

    def __init__(self, poller: Optional[FollowUpReminderPoller] = None) -> None:
        self._poller = poller

    def _collection_changed(self) -> None:
        if self._poller is not None:
            self._poller.notify_changed()

    @staticmethod
    def _scope_for(identity: Identity) -> Optional[UUID]:
        if identity.role == UserRole.admin:
            return None
        return UUID(identity.id)

    async def list_leads(
        self,
        identity: Identity,
        lead_repo: LeadRepository,
        *,
        search: Optional[str] = None,
        status: Optional[LeadStatus] = None,
        agent_filter: Optional[str] = None,
        sort_by: LeadSortKey = LeadSortKey.updated_at,
        direction: SortDirection = SortDirection.desc,
    ) -> List[LeadOut]:
        """Leads visible to *identity*: all for admins, own for BDAs."""
        is_admin = identity.role == UserRole.admin
        filters = LeadRepository.build_filters(
            self._scope_for(identity),
            search=search,
            status=status.value if status else None,
            agent_filter=agent_filter if is_admin else None,
        )
        rows = await lead_repo.find(
            filters,
            sort_by=sort_by.value,
            descending=direction == SortDirection.desc,
        )
        return [LeadOut.model_validate(row) for row in rows]

    async def update_lead(
        self,
        identity: Identity,
        lead_id: UUID,
        form: LeadUpdate,
        lead_repo: LeadRepository,
    ) -> LeadOut:
        """Save the agent detail form and return the re-read lead."""
        lead = await lead_repo.get_by_id(lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        if identity.role != UserRole.admin and lead.assigned_agent_id != UUID(
            identity.id
        ):
            raise PermissionDeniedError("You can only update leads assigned to you")

        values = form.model_dump(exclude_unset=True, mode="python")
        for field in ("status", "temperature"):
            if values.get(field) is not None:
                values[field] = values[field].value
        if values.get("interests") is not None:
            values["interests"] = [interest.value for interest in values["interests"]]

        try:
            await lead_repo.apply_update(lead, values)
            await lead_repo.flush()
        except SQLAlchemyError as exc:
            await lead_repo.rollback()
            raise StoreError("Failed to update lead") from exc
        await lead_repo.commit()

        refreshed = await lead_repo.get_many([lead_id])
        if not refreshed:
            raise StoreError(f"Lead {lead_id} disappeared after update")
        self._collection_changed()
        logger.info("Lead %s updated by %s", lead_id, identity.email)
        return LeadOut.model_validate(refreshed[0])

    async def assign_leads(
        self,
        lead_ids: List[UUID],
        agent_id: UUID,
        lead_repo: LeadRepository,
        profile_repo: ProfileRepository,
    ) -> List[LeadOut]:
        """Assign leads to a BDA; returns the leads as re-read after commit."""
        agent = await profile_repo.get_by_id(agent_id)
        if agent is None or agent.role != UserRole.bda.value:
            raise AgentNotFoundError(f"Agent {agent_id} not found")

        ids = list(dict.fromkeys(lead_ids))
        existing = await lead_repo.get_many(ids)
        missing = set(ids) - {lead.id for lead in existing}
        if missing:
            raise LeadNotFoundError(
                "Lead(s) not found: " + ", ".join(sorted(str(i) for i in missing))
            )

        try:
            await lead_repo.assign(ids, agent_id)
        except SQLAlchemyError as exc:
            await lead_repo.rollback()
            raise StoreError("Failed to assign leads") from exc
        await lead_repo.commit()

        refreshed = await lead_repo.get_many(ids)
        unsaved = [lead.id for lead in refreshed if lead.assigned_agent_id != agent_id]
        if unsaved or len(refreshed) != len(ids):
            raise StoreError("Assignment was not persisted for every lead")

        self._collection_changed()
        logger.info("%d lead(s) assigned to agent %s", len(ids), agent_id)
        order = {lead_id: index for index, lead_id in enumerate(ids)}
        refreshed.sort(key=lambda lead: order[lead.id])
        return [LeadOut.model_validate(lead) for lead in refreshed]

    async def import_csv(
        self, payload: bytes, lead_repo: LeadRepository
    ) -> Tuple[int, int]:
        """Replace every lead with the rows of an uploaded CSV.

        Nothing is written unless at least one row is valid.  Returns
        ``(imported, skipped)``.
        """
        leads, skipped = parse_leads_csv(payload, now=datetime.now(timezone.utc))
        rows = [lead.model_dump() for lead in leads]
        try:
            imported = await lead_repo.replace_all(rows)
        except SQLAlchemyError as exc:
            await lead_repo.rollback()
            raise StoreError("Import failed; existing leads were kept") from exc
        await lead_repo.commit()

        self._collection_changed()
        logger.info("CSV import replaced lead collection with %d lead(s)", imported)
        return imported, skipped

    async def export_csv(
        self,
        identity: Identity,
        lead_repo: LeadRepository,
        profile_repo: ProfileRepository,
        **filters,
    ) -> Tuple[str, str]:
        """Render the (filtered) lead table as CSV: ``(filename, text)``."""
        leads = await self.list_leads(identity, lead_repo, **filters)
        agents = await profile_repo.list_by_role(UserRole.bda.value)
        names = {agent.id: agent.full_name or agent.email for agent in agents}
        return export_leads_csv(leads, names, dashboard_now().date())
