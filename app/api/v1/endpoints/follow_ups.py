from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.schemas.follow_up import CalendarResponse, NotificationSet
from app.services.follow_up import (
    classify,
    dashboard_now,
    derive_notifications,
    events_on,
    follow_up_counts,
)
from app.services.lead_service import LeadService
from app.services.session_resolver import Identity
from app.repositories.lead_repository import LeadRepository
from app.api.deps import get_current_identity, get_lead_repo, get_lead_service

router = APIRouter(prefix="/follow-ups", tags=["Follow-ups"])


@router.get("/calendar", response_model=CalendarResponse)
async def follow_up_calendar(
    day: Optional[date] = Query(None, description="Only events on this day"),
    identity: Identity = Depends(get_current_identity),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> CalendarResponse:
    """Follow-up calendar for the caller's leads.

    ``counts`` always cover every event; ``day`` only narrows ``events``.
    """
    leads = await service.list_leads(identity, lead_repo)
    now = dashboard_now()
    events = classify(leads, now)
    counts = follow_up_counts(events)
    if day is not None:
        events = events_on(events, day, now.tzinfo)
    return CalendarResponse(counts=counts, events=events)


@router.get("/notifications", response_model=NotificationSet)
async def follow_up_notifications(
    identity: Identity = Depends(get_current_identity),
    service: LeadService = Depends(get_lead_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> NotificationSet:
    """Badge items plus the urgent and within-the-hour reminders."""
    now = dashboard_now()
    leads = await service.list_leads(identity, lead_repo)
    return derive_notifications(classify(leads, now), now)
