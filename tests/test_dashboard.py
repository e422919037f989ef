"""Tests for dashboard aggregates."""

import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

from app.schemas.common import LeadStatus
from app.schemas.dashboard import DateRange
from app.services.dashboard import (
    activity_report,
    admin_overview,
    agent_performance,
    aggregate,
    conversion_rate,
    recent_activity,
    scope_to_agent,
)
from tests.fakes import make_lead

NOW = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
AGENT_A = uuid.UUID("00000000-0000-4000-8000-00000000000a")
AGENT_B = uuid.UUID("00000000-0000-4000-8000-00000000000b")


def agent(agent_id, name):
    return SimpleNamespace(id=agent_id, full_name=name, email=f"{name.lower()}@x.test")


def portfolio():
    return [
        make_lead(name="A1", assigned_agent_id=AGENT_A, status="new"),
        make_lead(
            name="A2",
            assigned_agent_id=AGENT_A,
            status="closed_won",
            quotation_sent=True,
            follow_up_date=NOW + timedelta(hours=3),
        ),
        make_lead(name="A3", assigned_agent_id=AGENT_A, status="contacted"),
        make_lead(
            name="B1",
            assigned_agent_id=AGENT_B,
            status="proposal",
            quotation_sent=True,
            follow_up_date=NOW - timedelta(days=2),
        ),
        make_lead(name="U1", status="new"),
    ]


class TestAggregate:
    def test_empty_collection_has_every_status(self):
        metrics = aggregate([], now=NOW)
        assert metrics.total_leads == 0
        assert set(metrics.leads_by_status) == set(LeadStatus)
        assert all(count == 0 for count in metrics.leads_by_status.values())
        assert metrics.recent_activity == []

    def test_unscoped_counts(self):
        metrics = aggregate(portfolio(), now=NOW)
        assert metrics.total_leads == 5
        assert metrics.new_leads == 2
        assert metrics.follow_ups_today == 1
        assert metrics.leads_by_status[LeadStatus.closed_won] == 1
        assert sum(metrics.leads_by_status.values()) == metrics.total_leads

    def test_scoped_total_matches_filter(self):
        leads = portfolio()
        metrics = aggregate(leads, scope_agent_id=AGENT_A, now=NOW)
        expected = [lead for lead in leads if lead.assigned_agent_id == AGENT_A]
        assert metrics.total_leads == len(expected) == 3
        assert metrics.new_leads == 1

    def test_admin_view_of_agent_equals_agent_view(self):
        leads = portfolio()
        own = scope_to_agent(leads, AGENT_B)
        as_admin = aggregate(leads, scope_agent_id=AGENT_B, now=NOW)
        as_agent = aggregate(own, scope_agent_id=AGENT_B, now=NOW)
        assert as_admin == as_agent

    def test_recent_activity_limit(self):
        leads = [
            make_lead(updated_at=NOW - timedelta(minutes=i)) for i in range(15)
        ]
        metrics = aggregate(leads, now=NOW, limit=10)
        assert len(metrics.recent_activity) == 10
        assert metrics.recent_activity[0].updated_at == NOW


class TestRecentActivity:
    def test_newest_first(self):
        old = make_lead(name="old", updated_at=NOW - timedelta(days=1))
        new = make_lead(name="new", updated_at=NOW)
        assert [item.lead_name for item in recent_activity([old, new], 10)] == [
            "new",
            "old",
        ]

    def test_ties_are_stable(self):
        leads = [make_lead(updated_at=NOW) for _ in range(5)]
        first = recent_activity(leads, 10)
        second = recent_activity(list(reversed(leads)), 10)
        assert [i.lead_id for i in first] == [i.lead_id for i in second]


class TestConversionRate:
    def test_empty_is_zero(self):
        assert conversion_rate([]) == 0

    def test_rounds_half_up(self):
        leads = [make_lead(status="closed_won")] + [make_lead() for _ in range(7)]
        assert conversion_rate(leads) == 13  # 12.5%

    def test_all_won(self):
        assert conversion_rate([make_lead(status="closed_won")]) == 100


class TestAgentReports:
    def test_agent_performance(self):
        agents = [agent(AGENT_A, "Sara"), agent(AGENT_B, "Omar")]
        rows = agent_performance(portfolio(), agents)
        assert [row.agent_name for row in rows] == ["Sara", "Omar"]
        sara = rows[0]
        assert sara.total_leads == 3
        assert sara.follow_ups_made == 2
        assert sara.quotations_sent == 1
        assert sara.deals_closed == 1
        assert sara.conversion_rate == 33

    def test_agent_without_name_uses_email(self):
        nameless = SimpleNamespace(id=AGENT_B, full_name=None, email="omar@x.test")
        assert agent_performance([], [nameless])[0].agent_name == "omar@x.test"

    def test_admin_overview(self):
        agents = [agent(AGENT_A, "Sara"), agent(AGENT_B, "Omar")]
        overview = admin_overview(portfolio(), agents)
        assert overview.agent_count == 2
        assert overview.assigned_leads == 4
        assert overview.unassigned_leads == 1
        assert overview.conversion_rate == 20
        assert len(overview.agents) == 2


class TestActivityReport:
    def test_daily_rows_oldest_first(self):
        report = activity_report([], NOW, DateRange.seven_days)
        days = [row.day for row in report.daily]
        assert len(days) == 7
        assert days[0] == date(2024, 1, 9)
        assert days[-1] == date(2024, 1, 15)

    def test_counts_by_update_day(self):
        leads = [
            make_lead(updated_at=NOW - timedelta(hours=1), quotation_sent=True),
            make_lead(
                updated_at=NOW - timedelta(days=1),
                status="closed_won",
                follow_up_date=NOW,
            ),
            make_lead(updated_at=NOW - timedelta(days=40)),
        ]
        report = activity_report(leads, NOW, DateRange.thirty_days)
        assert len(report.daily) == 30
        today, yesterday = report.daily[-1], report.daily[-2]
        assert (today.calls, today.quotations) == (1, 1)
        assert (yesterday.calls, yesterday.closed_won, yesterday.follow_ups) == (
            1,
            1,
            1,
        )
        assert report.total_calls == 2
        assert report.deals_closed == 1
        assert report.date_range == DateRange.thirty_days
