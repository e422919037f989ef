from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.common import UserRole


class ProfileOut(BaseModel):
    """A user profile row (identity id, contact and role)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None


class AgentPerformance(BaseModel):
    agent_id: UUID
    agent_name: str
    total_leads: int
    follow_ups_made: int
    quotations_sent: int
    deals_closed: int
    conversion_rate: int
