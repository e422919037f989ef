from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import FollowUpBucket


class FollowUpEvent(BaseModel):
    """A lead's follow-up placed on the calendar. Derived, never stored."""

    lead_id: UUID
    title: str
    date: datetime
    bucket: FollowUpBucket


class FollowUpCounts(BaseModel):
    overdue: int = 0
    today: int = 0
    upcoming: int = 0


class CalendarResponse(BaseModel):
    counts: FollowUpCounts
    events: List[FollowUpEvent] = Field(default_factory=list)


class NotificationSet(BaseModel):
    """Badge list plus the two reminder classes.

    ``items`` is overdue followed by today; ``urgent`` and
    ``within_hour`` never share a lead id.
    """

    items: List[FollowUpEvent] = Field(default_factory=list)
    urgent: List[FollowUpEvent] = Field(default_factory=list)
    within_hour: List[FollowUpEvent] = Field(default_factory=list)
