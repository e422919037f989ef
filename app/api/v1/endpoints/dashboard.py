from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.exceptions import PermissionDeniedError
from app.schemas.common import UserRole
from app.schemas.dashboard import ActivityReport, AdminOverview, DashboardMetrics, DateRange
from app.services.dashboard import activity_report, admin_overview, aggregate
from app.services.follow_up import dashboard_now
from app.services.lead_service import LeadService
from app.services.session_resolver import Identity
from app.repositories.lead_repository import LeadRepository
from app.repositories.profile_repository import ProfileRepository
from app.api.deps import (
    get_current_identity,
    get_lead_repo,
    get_lead_service,
    get_profile_repo,
    require_admin,
)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/metrics", response_model=DashboardMetrics)
async def dashboard_metrics(
    agent_id: Optional[UUID] = Query(
        None, description="Admin only: restrict the metrics to one agent"
    ),
    identity: Identity = Depends(get_current_identity),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> DashboardMetrics:
    """Headline counts for the caller.

    A BDA always gets their own numbers; an admin gets everything or,
    with ``agent_id``, exactly what that agent would see.
    """
    if identity.role != UserRole.admin:
        own_id = UUID(identity.id)
        if agent_id is not None and agent_id != own_id:
            raise PermissionDeniedError("You can only view your own dashboard")
        agent_id = own_id
    leads = await service.list_leads(identity, lead_repo)
    return aggregate(leads, scope_agent_id=agent_id, now=dashboard_now())


@router.get("/overview", response_model=AdminOverview)
async def dashboard_overview(
    admin: Identity = Depends(require_admin),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
) -> AdminOverview:
    """Assignment totals and per-agent performance."""
    leads = await service.list_leads(admin, lead_repo)
    agents = await profile_repo.list_by_role(UserRole.bda.value)
    return admin_overview(leads, agents)


@router.get("/report", response_model=ActivityReport)
async def dashboard_report(
    date_range: DateRange = Query(DateRange.seven_days),
    admin: Identity = Depends(require_admin),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> ActivityReport:
    """Daily activity over the last 7, 30 or 90 days."""
    leads = await service.list_leads(admin, lead_repo)
    return activity_report(leads, dashboard_now(), date_range)
