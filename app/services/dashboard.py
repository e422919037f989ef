"""Dashboard aggregates computed from an in-memory lead collection.

The admin view of one agent and that agent's own dashboard go through
the same :func:`aggregate`; they differ only in the ``scope_agent_id``
pre-filter, which is applied before anything is counted.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence
from uuid import UUID

from app.core.config import settings
from app.core.constants import REPORT_WINDOWS
from app.schemas.agent import AgentPerformance
from app.schemas.common import FollowUpBucket, LeadStatus
from app.schemas.dashboard import (
    ActivityItem,
    ActivityReport,
    AdminOverview,
    DailyActivity,
    DashboardMetrics,
    DateRange,
)
from app.services.follow_up import bucket_for, local_day


def scope_to_agent(leads: Iterable[Any], agent_id: Optional[UUID]) -> List[Any]:
    """Leads assigned to *agent_id*, or all leads when it is ``None``."""
    if agent_id is None:
        return list(leads)
    return [lead for lead in leads if lead.assigned_agent_id == agent_id]


def _status(lead: Any) -> LeadStatus:
    return LeadStatus(lead.status)


def conversion_rate(leads: Sequence[Any]) -> int:
    """Percentage of *leads* closed as won, rounded half up."""
    if not leads:
        return 0
    won = sum(1 for lead in leads if _status(lead) == LeadStatus.closed_won)
    return math.floor(won * 100 / len(leads) + 0.5)


def recent_activity(leads: Iterable[Any], limit: int) -> List[ActivityItem]:
    """Most recently updated leads first; ties ordered by lead id."""
    ordered = sorted(
        leads, key=lambda lead: (lead.updated_at, str(lead.id)), reverse=True
    )
    return [
        ActivityItem(
            lead_id=lead.id,
            lead_name=lead.name,
            status=_status(lead),
            assigned_agent_id=lead.assigned_agent_id,
            updated_at=lead.updated_at,
        )
        for lead in ordered[:limit]
    ]


def aggregate(
    leads: Iterable[Any],
    scope_agent_id: Optional[UUID] = None,
    *,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> DashboardMetrics:
    """Headline counts, per-status counts and the recent-activity feed."""
    now = now or datetime.now(timezone.utc)
    if limit is None:
        limit = settings.RECENT_ACTIVITY_LIMIT

    scoped = scope_to_agent(leads, scope_agent_id)

    by_status = {status: 0 for status in LeadStatus}
    for lead in scoped:
        by_status[_status(lead)] += 1

    follow_ups_today = sum(
        1
        for lead in scoped
        if lead.follow_up_date is not None
        and bucket_for(lead.follow_up_date, now) == FollowUpBucket.today
    )

    return DashboardMetrics(
        total_leads=len(scoped),
        new_leads=by_status[LeadStatus.new],
        follow_ups_today=follow_ups_today,
        leads_by_status=by_status,
        recent_activity=recent_activity(scoped, limit),
    )


def agent_performance(
    leads: Sequence[Any], agents: Iterable[Any]
) -> List[AgentPerformance]:
    """Per-BDA pipeline counts, in the order *agents* are given."""
    results = []
    for agent in agents:
        own = scope_to_agent(leads, agent.id)
        results.append(
            AgentPerformance(
                agent_id=agent.id,
                agent_name=agent.full_name or agent.email,
                total_leads=len(own),
                follow_ups_made=sum(
                    1 for lead in own if _status(lead) != LeadStatus.new
                ),
                quotations_sent=sum(1 for lead in own if lead.quotation_sent),
                deals_closed=sum(
                    1 for lead in own if _status(lead) == LeadStatus.closed_won
                ),
                conversion_rate=conversion_rate(own),
            )
        )
    return results


def admin_overview(leads: Sequence[Any], agents: Sequence[Any]) -> AdminOverview:
    assigned = sum(1 for lead in leads if lead.assigned_agent_id is not None)
    return AdminOverview(
        agent_count=len(agents),
        assigned_leads=assigned,
        unassigned_leads=len(leads) - assigned,
        conversion_rate=conversion_rate(leads),
        agents=agent_performance(leads, agents),
    )


def activity_report(
    leads: Sequence[Any],
    now: datetime,
    date_range: DateRange = DateRange.seven_days,
    *,
    limit: Optional[int] = None,
) -> ActivityReport:
    """Daily update counts over the window, oldest day first.

    A lead counts toward a day when its ``updated_at`` falls on it; the
    window totals count leads updated since ``now - days``.
    """
    if limit is None:
        limit = settings.RECENT_ACTIVITY_LIMIT
    days = REPORT_WINDOWS[date_range.value]
    tz = now.tzinfo
    today = local_day(now, tz)

    daily = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        updated = [lead for lead in leads if local_day(lead.updated_at, tz) == day]
        daily.append(
            DailyActivity(
                day=day,
                calls=len(updated),
                follow_ups=sum(1 for lead in updated if lead.follow_up_date),
                quotations=sum(1 for lead in updated if lead.quotation_sent),
                closed_won=sum(
                    1 for lead in updated if _status(lead) == LeadStatus.closed_won
                ),
            )
        )

    start = now - timedelta(days=days)
    recent = [lead for lead in leads if lead.updated_at >= start]

    return ActivityReport(
        date_range=date_range,
        total_calls=len(recent),
        follow_ups_made=sum(1 for lead in recent if lead.follow_up_date),
        quotations_sent=sum(1 for lead in recent if lead.quotation_sent),
        deals_closed=sum(
            1 for lead in recent if _status(lead) == LeadStatus.closed_won
        ),
        conversion_rate=conversion_rate(leads),
        daily=daily,
        recent_updates=recent_activity(leads, limit),
    )
