from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.agent import AgentPerformance
from app.schemas.common import LeadStatus


class DateRange(str, Enum):
    seven_days = "7d"
    thirty_days = "30d"
    ninety_days = "90d"


class ActivityItem(BaseModel):
    """One entry in the "recently updated" feed."""

    lead_id: UUID
    lead_name: str
    status: LeadStatus
    assigned_agent_id: Optional[UUID] = None
    updated_at: datetime


class DashboardMetrics(BaseModel):
    total_leads: int
    new_leads: int
    follow_ups_today: int
    leads_by_status: Dict[LeadStatus, int]
    recent_activity: List[ActivityItem] = Field(default_factory=list)


class AdminOverview(BaseModel):
    agent_count: int
    assigned_leads: int
    unassigned_leads: int
    conversion_rate: int
    agents: List[AgentPerformance] = Field(default_factory=list)


class DailyActivity(BaseModel):
    day: date
    calls: int
    follow_ups: int
    quotations: int
    closed_won: int


class ActivityReport(BaseModel):
    date_range: DateRange
    total_calls: int
    follow_ups_made: int
    quotations_sent: int
    deals_closed: int
    conversion_rate: int
    daily: List[DailyActivity] = Field(default_factory=list)
    recent_updates: List[ActivityItem] = Field(default_factory=list)
