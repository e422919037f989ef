"""Follow-up classification and reminder derivation.

Everything here is a pure function of the leads passed in and ``now``:
no I/O, no clock reads (except :func:`dashboard_now`), no hidden state.
Buckets are decided by calendar day in ``now``'s timezone, never by a
rolling 24-hour window.
"""

from collections import Counter
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.schemas.common import FollowUpBucket
from app.schemas.follow_up import FollowUpCounts, FollowUpEvent, NotificationSet

DateLike = Union[date, datetime]


def dashboard_now() -> datetime:
    """Current time in the configured dashboard timezone."""
    return datetime.now(ZoneInfo(settings.DASHBOARD_TIMEZONE))


def local_day(value: DateLike, tz: Optional[tzinfo]) -> date:
    """Calendar day of *value* as seen from *tz*.

    Naive datetimes are taken to already be in *tz*; plain dates are
    returned unchanged.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or tz is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


def _as_datetime(value: DateLike, now: datetime) -> datetime:
    """Normalise *value* so it can be compared with *now*.

    With a naive *now*, aware values are read on their own wall clock,
    the same way :func:`local_day` reads them.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=now.tzinfo)
    if value.tzinfo is None and now.tzinfo is not None:
        return value.replace(tzinfo=now.tzinfo)
    if value.tzinfo is not None and now.tzinfo is None:
        return value.replace(tzinfo=None)
    return value


def bucket_for(follow_up: DateLike, now: datetime) -> FollowUpBucket:
    """Place a follow-up date relative to today."""
    day = local_day(follow_up, now.tzinfo)
    today = local_day(now, now.tzinfo)
    if day < today:
        return FollowUpBucket.overdue
    if day == today:
        return FollowUpBucket.today
    return FollowUpBucket.upcoming


def classify(leads: Iterable[Any], now: datetime) -> List[FollowUpEvent]:
    """Return one calendar event per lead that has a follow-up date.

    Leads without a follow-up date are skipped entirely.  Events keep
    the input order.
    """
    events = []
    for lead in leads:
        if lead.follow_up_date is None:
            continue
        events.append(
            FollowUpEvent(
                lead_id=lead.id,
                title=lead.name,
                date=_as_datetime(lead.follow_up_date, now),
                bucket=bucket_for(lead.follow_up_date, now),
            )
        )
    return events


def follow_up_counts(events: Iterable[FollowUpEvent]) -> FollowUpCounts:
    counter = Counter(event.bucket for event in events)
    return FollowUpCounts(
        overdue=counter[FollowUpBucket.overdue],
        today=counter[FollowUpBucket.today],
        upcoming=counter[FollowUpBucket.upcoming],
    )


def events_on(
    events: Iterable[FollowUpEvent], day: date, tz: Optional[tzinfo] = None
) -> List[FollowUpEvent]:
    """Events falling on *day* as seen from *tz* (default: each event's own)."""
    return [e for e in events if local_day(e.date, tz or e.date.tzinfo) == day]


def _within(when: datetime, start: datetime, end: datetime) -> bool:
    return start <= when <= end


def derive_notifications(
    events: Iterable[FollowUpEvent],
    now: datetime,
    *,
    urgent_minutes: Optional[int] = None,
    hourly_minutes: Optional[int] = None,
) -> NotificationSet:
    """Build the badge list and the two reminder classes.

    ``items`` is every overdue event followed by every event due today.
    ``urgent`` holds today's events due within *urgent_minutes* of
    *now*; ``within_hour`` holds today's events due within
    *hourly_minutes*, minus any lead already in ``urgent``.
    """
    if urgent_minutes is None:
        urgent_minutes = settings.URGENT_REMINDER_MINUTES
    if hourly_minutes is None:
        hourly_minutes = settings.HOURLY_REMINDER_MINUTES

    events = list(events)
    overdue = [e for e in events if e.bucket == FollowUpBucket.overdue]
    today = [e for e in events if e.bucket == FollowUpBucket.today]

    urgent_end = now + timedelta(minutes=urgent_minutes)
    hour_end = now + timedelta(minutes=hourly_minutes)

    urgent = [e for e in today if _within(_as_datetime(e.date, now), now, urgent_end)]
    urgent_ids = {e.lead_id for e in urgent}
    within_hour = [
        e
        for e in today
        if _within(_as_datetime(e.date, now), now, hour_end)
        and e.lead_id not in urgent_ids
    ]

    return NotificationSet(
        items=overdue + today,
        urgent=urgent,
        within_hour=within_hour,
    )
