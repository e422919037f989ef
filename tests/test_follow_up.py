"""Tests for follow-up classification and reminder derivation."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.schemas.common import FollowUpBucket
from app.services.follow_up import (
    bucket_for,
    classify,
    derive_notifications,
    events_on,
    follow_up_counts,
)
from tests.fakes import make_lead

UTC = timezone.utc


def at(day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


class TestClassify:
    def test_earlier_day_is_overdue(self):
        lead = make_lead(follow_up_date=at(10))
        events = classify([lead], at(15, 12))
        assert [e.bucket for e in events] == [FollowUpBucket.overdue]

    def test_later_hour_same_day_is_today(self):
        lead = make_lead(follow_up_date=at(15, 23))
        events = classify([lead], at(15, 8))
        assert events[0].bucket == FollowUpBucket.today

    def test_earlier_hour_same_day_is_still_today(self):
        """Calendar day, not a rolling 24 hour window."""
        lead = make_lead(follow_up_date=at(15, 0, 5))
        assert classify([lead], at(15, 23, 59))[0].bucket == FollowUpBucket.today

    def test_next_midnight_is_upcoming(self):
        lead = make_lead(follow_up_date=at(16, 0))
        assert classify([lead], at(15, 23, 59))[0].bucket == FollowUpBucket.upcoming

    def test_leads_without_follow_up_are_excluded(self):
        leads = [
            make_lead(name="No date"),
            make_lead(name="Dated", follow_up_date=at(20)),
        ]
        events = classify(leads, at(15))
        assert [e.title for e in events] == ["Dated"]

    def test_event_fields(self):
        lead = make_lead(name="Globex", follow_up_date=at(15, 14))
        event = classify([lead], at(15, 9))[0]
        assert event.lead_id == lead.id
        assert event.title == "Globex"
        assert event.date == at(15, 14)

    def test_input_order_is_kept_and_output_is_deterministic(self):
        leads = [
            make_lead(follow_up_date=at(20)),
            make_lead(follow_up_date=at(1)),
            make_lead(follow_up_date=at(15, 18)),
        ]
        first = classify(leads, at(15, 9))
        second = classify(leads, at(15, 9))
        assert first == second
        assert [e.lead_id for e in first] == [lead.id for lead in leads]

    def test_plain_dates_are_accepted(self):
        lead = make_lead(follow_up_date=date(2024, 1, 15))
        event = classify([lead], at(15, 9))[0]
        assert event.bucket == FollowUpBucket.today
        assert event.date == at(15)

    def test_days_are_judged_in_nows_timezone(self):
        karachi = ZoneInfo("Asia/Karachi")
        now = datetime(2024, 1, 15, 10, 0, tzinfo=karachi)
        # 20:00 UTC on the 15th is 01:00 on the 16th in Karachi
        lead = make_lead(follow_up_date=at(15, 20))
        assert classify([lead], now)[0].bucket == FollowUpBucket.upcoming
        assert bucket_for(at(15, 20), now.astimezone(UTC)) == FollowUpBucket.today

    def test_naive_datetimes_use_nows_timezone(self):
        lead = make_lead(follow_up_date=datetime(2024, 1, 15, 22, 0))
        event = classify([lead], at(15, 9))[0]
        assert event.bucket == FollowUpBucket.today
        assert event.date.tzinfo is UTC


class TestCalendarHelpers:
    def test_counts_per_bucket(self):
        leads = [
            make_lead(follow_up_date=at(1)),
            make_lead(follow_up_date=at(2)),
            make_lead(follow_up_date=at(15, 17)),
            make_lead(follow_up_date=at(28)),
        ]
        counts = follow_up_counts(classify(leads, at(15, 9)))
        assert (counts.overdue, counts.today, counts.upcoming) == (2, 1, 1)

    def test_counts_of_nothing(self):
        counts = follow_up_counts([])
        assert (counts.overdue, counts.today, counts.upcoming) == (0, 0, 0)

    def test_events_on_selected_day(self):
        leads = [
            make_lead(name="A", follow_up_date=at(20, 9)),
            make_lead(name="B", follow_up_date=at(20, 17)),
            make_lead(name="C", follow_up_date=at(21, 9)),
        ]
        events = classify(leads, at(15))
        assert [e.title for e in events_on(events, date(2024, 1, 20))] == ["A", "B"]

    def test_events_on_uses_given_timezone(self):
        karachi = ZoneInfo("Asia/Karachi")
        events = classify([make_lead(follow_up_date=at(20, 21))], at(15))
        assert events_on(events, date(2024, 1, 20)) == events
        assert events_on(events, date(2024, 1, 21), karachi) == events


class TestNotifications:
    def setup_method(self):
        self.now = at(15, 10, 0)
        self.overdue = make_lead(name="Overdue", follow_up_date=at(14, 16))
        self.earlier_today = make_lead(name="Earlier", follow_up_date=at(15, 9))
        self.urgent = make_lead(name="Urgent", follow_up_date=at(15, 10, 5))
        self.hourly = make_lead(name="Hourly", follow_up_date=at(15, 10, 45))
        self.later = make_lead(name="Later", follow_up_date=at(15, 15))
        self.tomorrow = make_lead(name="Tomorrow", follow_up_date=at(16, 10, 5))

    def derive(self, leads):
        return derive_notifications(
            classify(leads, self.now), self.now, urgent_minutes=10, hourly_minutes=60
        )

    def test_items_are_overdue_then_today(self):
        notes = self.derive(
            [self.later, self.tomorrow, self.overdue, self.urgent, self.earlier_today]
        )
        assert [e.title for e in notes.items] == [
            "Overdue",
            "Later",
            "Urgent",
            "Earlier",
        ]

    def test_reminder_classes(self):
        notes = self.derive(
            [self.overdue, self.earlier_today, self.urgent, self.hourly, self.later]
        )
        assert [e.title for e in notes.urgent] == ["Urgent"]
        assert [e.title for e in notes.within_hour] == ["Hourly"]

    def test_reminder_classes_never_share_a_lead(self):
        notes = self.derive([self.urgent, self.hourly])
        urgent_ids = {e.lead_id for e in notes.urgent}
        hourly_ids = {e.lead_id for e in notes.within_hour}
        assert urgent_ids.isdisjoint(hourly_ids)
        assert self.urgent.id in urgent_ids

    def test_window_edges_are_inclusive(self):
        edge_urgent = make_lead(follow_up_date=self.now + timedelta(minutes=10))
        edge_hour = make_lead(follow_up_date=self.now + timedelta(minutes=60))
        just_past = make_lead(follow_up_date=self.now + timedelta(minutes=61))
        notes = self.derive([edge_urgent, edge_hour, just_past])
        assert [e.lead_id for e in notes.urgent] == [edge_urgent.id]
        assert [e.lead_id for e in notes.within_hour] == [edge_hour.id]

    def test_past_and_future_days_never_remind(self):
        notes = self.derive([self.overdue, self.earlier_today, self.tomorrow])
        assert notes.urgent == []
        assert notes.within_hour == []

    def test_defaults_come_from_settings(self):
        notes = derive_notifications(classify([self.urgent], self.now), self.now)
        assert [e.title for e in notes.urgent] == ["Urgent"]

    def test_naive_now_with_stored_timezone_aware_dates(self):
        """Rows read back from the database carry an offset; ``now`` may not."""
        now = datetime(2024, 1, 15, 8, 0)
        soon = make_lead(name="Soon", follow_up_date=at(15, 8, 5))
        later = make_lead(name="Later", follow_up_date=at(15, 8, 40))

        events = classify([soon, later], now)
        notes = derive_notifications(
            events, now, urgent_minutes=10, hourly_minutes=60
        )

        assert [e.bucket for e in events] == [FollowUpBucket.today] * 2
        assert [e.title for e in notes.urgent] == ["Soon"]
        assert [e.title for e in notes.within_hour] == ["Later"]

    def test_naive_now_with_aware_events_built_elsewhere(self):
        now = datetime(2024, 1, 15, 8, 0)
        events = classify([make_lead(name="Soon", follow_up_date=at(15, 8, 5))], at(15, 8))

        notes = derive_notifications(events, now, urgent_minutes=10, hourly_minutes=60)

        assert [e.title for e in notes.urgent] == ["Soon"]
