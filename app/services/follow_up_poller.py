import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple
from uuid import UUID

from app.core.config import settings
from app.models.lead import Lead
from app.repositories.lead_repository import LeadRepository
from app.schemas.follow_up import FollowUpEvent
from app.services.follow_up import classify, dashboard_now, derive_notifications

logger = logging.getLogger(__name__)

URGENT = "urgent"
WITHIN_HOUR = "within_hour"

Notifier = Callable[[str, UUID, FollowUpEvent], Awaitable[None]]
ReminderKey = Tuple[UUID, str, datetime]


async def log_notifier(kind: str, agent_id: UUID, event: FollowUpEvent) -> None:
    """Default notifier: one INFO line per reminder."""
    if kind == URGENT:
        logger.info(
            "Urgent follow-up for agent %s: %s is due in less than %d minutes (%s)",
            agent_id,
            event.title,
            settings.URGENT_REMINDER_MINUTES,
            event.date.isoformat(),
        )
    else:
        logger.info(
            "Follow-up reminder for agent %s: %s is due within the hour (%s)",
            agent_id,
            event.title,
            event.date.isoformat(),
        )


class FollowUpReminderPoller:
    """Re-evaluates follow-ups on a fixed interval and announces new ones.

    A reminder is announced once per ``(lead, class, follow-up date)``;
    keys that fall out of the reminder window are forgotten, so a
    rescheduled follow-up is announced again.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).
        notifier: Coroutine called with ``(kind, agent_id, event)``.
        interval: Seconds between cycles when nothing changes.
        clock: Returns "now"; defaults to the dashboard timezone clock.
    """

    def __init__(
        self,
        session_factory,
        notifier: Optional[Notifier] = None,
        *,
        interval: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_factory = session_factory
        self._notifier = notifier or log_notifier
        self._interval = (
            interval if interval is not None else settings.FOLLOW_UP_POLL_INTERVAL_SECONDS
        )
        self._clock = clock or dashboard_now
        self._changed = asyncio.Event()
        self._announced: Set[ReminderKey] = set()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Follow-up reminder task stopped")

    def notify_changed(self) -> None:
        """Run the next cycle now instead of waiting for the interval."""
        self._changed.set()

    async def run_cycle(self) -> int:
        """One evaluation pass. Returns the number of reminders sent."""
        async with self._session_factory() as session:
            leads = await LeadRepository(session).list_scheduled()

        now = self._clock()
        by_agent: Dict[UUID, List[Lead]] = defaultdict(list)
        for lead in leads:
            by_agent[lead.assigned_agent_id].append(lead)

        current: Set[ReminderKey] = set()
        sent = 0
        for agent_id, own in by_agent.items():
            notifications = derive_notifications(classify(own, now), now)
            for kind, events in (
                (URGENT, notifications.urgent),
                (WITHIN_HOUR, notifications.within_hour),
            ):
                for event in events:
                    key = (event.lead_id, kind, event.date)
                    if key in self._announced:
                        current.add(key)
                        continue
                    try:
                        await self._notifier(kind, agent_id, event)
                    except Exception:
                        logger.warning(
                            "Reminder for lead %s failed", event.lead_id, exc_info=True
                        )
                        continue
                    current.add(key)
                    sent += 1

        self._announced = current
        return sent

    async def _run(self) -> None:
        logger.info(
            "Follow-up reminder task started (interval=%ss)", self._interval
        )
        while True:
            self._changed.clear()
            try:
                count = await self.run_cycle()
                if count:
                    logger.info("Follow-up cycle sent %d reminder(s)", count)
            except Exception:
                logger.error("Follow-up reminder cycle failed", exc_info=True)
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
