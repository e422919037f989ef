from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response

from app.schemas.common import LeadSortKey, LeadStatus, SortDirection
from app.schemas.lead import (
    LeadAssignRequest,
    LeadAssignResponse,
    LeadImportResponse,
    LeadOut,
    LeadUpdate,
)
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

router = APIRouter(prefix="/leads", tags=["Leads"])

# "all", "unassigned" or an agent id
AGENT_FILTER_PATTERN = (
    r"^(all|unassigned|[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}"
    r"-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})$"
)


@router.get("", response_model=List[LeadOut])
async def list_leads(
    search: Optional[str] = Query(None, description="Name, email or phone substring"),
    status: Optional[LeadStatus] = Query(None),
    agent: Optional[str] = Query(
        None,
        pattern=AGENT_FILTER_PATTERN,
        description="Admin only: 'unassigned' or an agent id",
    ),
    sort_by: LeadSortKey = Query(LeadSortKey.updated_at),
    direction: SortDirection = Query(SortDirection.desc),
    identity: Identity = Depends(get_current_identity),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> List[LeadOut]:
    """Lead table. Admins see every lead, BDAs only their own."""
    return await service.list_leads(
        identity,
        lead_repo,
        search=search,
        status=status,
        agent_filter=agent,
        sort_by=sort_by,
        direction=direction,
    )


@router.post("/assign", response_model=LeadAssignResponse)
async def assign_leads(
    request_body: LeadAssignRequest,
    _admin: Identity = Depends(require_admin),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
) -> LeadAssignResponse:
    """Assign one or more leads to a BDA.

    The response carries the leads as read back after the commit.
    """
    leads = await service.assign_leads(
        lead_ids=request_body.lead_ids,
        agent_id=request_body.agent_id,
        lead_repo=lead_repo,
        profile_repo=profile_repo,
    )
    return LeadAssignResponse(
        agent_id=request_body.agent_id,
        assigned=len(leads),
        leads=leads,
    )


@router.post("/import", response_model=LeadImportResponse)
async def import_leads(
    file: UploadFile = File(..., description="CSV export of the lead table"),
    _admin: Identity = Depends(require_admin),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadImportResponse:
    """Replace every lead with the contents of an uploaded CSV."""
    payload = await file.read()
    imported, skipped = await service.import_csv(payload, lead_repo)
    return LeadImportResponse(imported=imported, skipped=skipped)


@router.get("/export")
async def export_leads(
    search: Optional[str] = Query(None),
    status: Optional[LeadStatus] = Query(None),
    agent: Optional[str] = Query(None, pattern=AGENT_FILTER_PATTERN),
    sort_by: LeadSortKey = Query(LeadSortKey.updated_at),
    direction: SortDirection = Query(SortDirection.desc),
    admin: Identity = Depends(require_admin),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
) -> Response:
    """Download the (filtered) lead table as CSV."""
    filename, text = await service.export_csv(
        admin,
        lead_repo,
        profile_repo,
        search=search,
        status=status,
        agent_filter=agent,
        sort_by=sort_by,
        direction=direction,
    )
    return Response(
        content=text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{lead_id}", response_model=LeadOut)
async def update_lead(
    lead_id: UUID,
    update_data: LeadUpdate,
    identity: Identity = Depends(get_current_identity),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadOut:
    """Save the lead detail form.

    BDAs may only update leads assigned to them.
    """
    return await service.update_lead(identity, lead_id, update_data, lead_repo)
