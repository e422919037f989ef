"""Lead-specific Pydantic schemas (domain view, edit form, bulk actions)."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.schemas.common import (
    LeadInterest,
    LeadStatus,
    LeadTemperature,
    SuccessResponse,
)


# ---------------------------------------------------------------------------
# Domain / response schemas
# ---------------------------------------------------------------------------


class LeadOut(BaseModel):
    """A lead as held by the dashboard (a possibly stale store copy)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    phone: str = ""
    email: str = ""
    industry: str = ""
    service: str = ""
    lead_type: str = ""
    status: LeadStatus = LeadStatus.new
    assigned_agent_id: Optional[UUID] = None
    follow_up_date: Optional[datetime] = None
    temperature: LeadTemperature = LeadTemperature.unset
    interests: List[LeadInterest] = Field(default_factory=list)
    remarks: str = ""
    whatsapp_sent: bool = False
    email_sent: bool = False
    quotation_sent: bool = False
    sample_work_sent: bool = False
    created_at: datetime
    updated_at: datetime


class LeadCreate(BaseModel):
    """A validated lead row ready to be inserted (CSV import)."""

    model_config = ConfigDict(use_enum_values=True)

    # Lengths mirror the ``leads`` columns
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field("", max_length=50)
    email: str = Field("", max_length=255)
    industry: str = Field("", max_length=100)
    service: str = Field("", max_length=100)
    lead_type: str = Field("", max_length=100)
    status: LeadStatus = LeadStatus.new
    follow_up_date: Optional[datetime] = None
    temperature: LeadTemperature = LeadTemperature.unset
    interests: List[LeadInterest] = Field(default_factory=list)
    remarks: str = ""
    whatsapp_sent: bool = False
    email_sent: bool = False
    quotation_sent: bool = False
    sample_work_sent: bool = False
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LeadUpdate(BaseModel):
    """Request body for PUT /api/v1/leads/{lead_id} (agent detail form).

    Only the fields present in the request are written.  ``follow_up_date``
    is the one field that may be cleared with an explicit ``null``.
    """

    status: Optional[LeadStatus] = None
    temperature: Optional[LeadTemperature] = None
    interests: Optional[List[LeadInterest]] = None
    remarks: Optional[str] = None
    follow_up_date: Optional[datetime] = None
    whatsapp_sent: Optional[bool] = None
    email_sent: Optional[bool] = None
    quotation_sent: Optional[bool] = None
    sample_work_sent: Optional[bool] = None

    @field_validator(
        "status",
        "temperature",
        "interests",
        "remarks",
        "whatsapp_sent",
        "email_sent",
        "quotation_sent",
        "sample_work_sent",
    )
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        """Omit a field to leave it unchanged; ``null`` is not a value for it."""
        if value is None:
            raise ValueError(f"{info.field_name} may be omitted but not null")
        return value


class LeadAssignRequest(BaseModel):
    """Request body for POST /api/v1/leads/assign."""

    lead_ids: List[UUID] = Field(..., min_length=1)
    agent_id: UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeadAssignResponse(SuccessResponse):
    agent_id: UUID
    assigned: int
    leads: List[LeadOut]


class LeadImportResponse(SuccessResponse):
    imported: int
    skipped: int
