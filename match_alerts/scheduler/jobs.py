"""The match check tick: fetch, evaluate, filter, dispatch, persist, evict.

A tick never raises. Feed failures end it before anything is recorded;
delivery and storage failures are logged and the tick carries on, so the
interval job that calls it always stays armed.
"""
from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from loguru import logger

from match_alerts.exceptions import DeliveryError, FetchError, PersistenceError
from match_alerts.feed.base import BaseEventFeed, Event
from match_alerts.milestones import Milestone, due_milestones, trigger_time, window_close
from match_alerts.notifications.dispatcher import NotificationDispatcher
from match_alerts.notifications.formatter import build_milestone_notification
from match_alerts.storage.dedup import DedupKey, DedupStore
from match_alerts.storage.settings import NotificationSettings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerState(enum.Enum):
    idle = "idle"
    polling = "polling"
    evaluating = "evaluating"
    dispatching = "dispatching"
    persisting = "persisting"
    disabled = "disabled"


@dataclass
class TickResult:
    started_at: datetime
    skipped: Optional[str] = None  # "busy" / "disabled" / "fetch_failed" / "error"
    event_count: int = 0
    due_count: int = 0
    dispatched: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    evicted: int = 0


class MatchCheckJob:
    """Runs one tick at a time against a feed, a dispatcher and a dedup store."""

    def __init__(
        self,
        feed: BaseEventFeed,
        dispatcher: NotificationDispatcher,
        dedup: DedupStore,
        settings_provider: Callable[[], NotificationSettings],
        clock: Callable[[], datetime] = utc_now,
        retract_on_failure: bool = False,
    ):
        self.feed = feed
        self.dispatcher = dispatcher
        self.dedup = dedup
        self.settings_provider = settings_provider
        self.clock = clock
        self.retract_on_failure = retract_on_failure

        self._lock = threading.Lock()
        self._state = SchedulerState.idle
        self.events: List[Event] = []
        self.last_check: Optional[datetime] = None
        self.last_result: Optional[TickResult] = None

    @property
    def state(self) -> SchedulerState:
        if self._state is SchedulerState.idle and not self.settings_provider().enabled:
            return SchedulerState.disabled
        return self._state

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def run(self, now: Optional[datetime] = None) -> TickResult:
        started_at = now or self.clock()
        if not self._lock.acquire(blocking=False):
            logger.info("Match check already in progress, skipping this tick")
            return TickResult(started_at=started_at, skipped="busy")

        try:
            result = self._run(started_at)
        except Exception:
            logger.exception(f"Match check at {started_at.isoformat()} failed unexpectedly")
            result = TickResult(started_at=started_at, skipped="error")
        finally:
            self._state = SchedulerState.idle
            self._lock.release()

        self.last_result = result
        return result

    def _run(self, now: datetime) -> TickResult:
        settings = self.settings_provider()
        result = TickResult(started_at=now)
        if not settings.enabled:
            logger.debug("Notifications are disabled, skipping match check")
            result.skipped = "disabled"
            return result

        self.last_check = now

        # 1. Polling
        self._state = SchedulerState.polling
        try:
            events = self.feed.fetch()
        except FetchError as e:
            logger.warning(f"Match feed fetch failed at {now.isoformat()}: {e}")
            result.skipped = "fetch_failed"
            return result
        self.events = events
        result.event_count = len(events)

        # 2-3. Evaluating and filtering
        self._state = SchedulerState.evaluating
        pending = self._collect_due(events, now, settings)
        result.due_count = len(pending)

        # 4. Dispatching
        self._state = SchedulerState.dispatching
        for event, milestone, key in pending:
            # Claimed before delivery; released or marked undelivered on failure
            if not self.dedup.add(key, event.start, closes_at=window_close(event, milestone)):
                continue
            if self._dispatch(event, milestone, key, now):
                result.dispatched.append(str(key))
            else:
                result.failed.append(str(key))

        # 5. Persisting
        self._state = SchedulerState.persisting
        try:
            self.dedup.flush()
        except PersistenceError as e:
            logger.error(f"Could not persist dedup keys, keeping them in memory: {e}")

        # 6. Eviction
        try:
            result.evicted = self.dedup.evict(now)
        except PersistenceError as e:
            logger.error(f"Dedup eviction failed: {e}")

        logger.info(
            f"Match check done: {result.event_count} matches, {result.due_count} due, "
            f"{len(result.dispatched)} sent, {len(result.failed)} failed"
        )
        return result

    def _collect_due(
        self, events: List[Event], now: datetime, settings: NotificationSettings
    ) -> List[Tuple[Event, Milestone, DedupKey]]:
        enabled = settings.enabled_milestones()
        pending = []
        seen = set()
        for event in events:
            try:
                due = due_milestones(event, now, enabled)
            except Exception as e:
                logger.error(f"Error evaluating match {event.event_id} ({event.title}): {e}")
                continue
            for milestone in sorted(due, key=lambda m: trigger_time(event, m)):
                key = DedupKey(event.event_id, milestone)
                if key in seen or self.dedup.contains(key):
                    continue
                seen.add(key)
                pending.append((event, milestone, key))
        return pending

    def _dispatch(self, event: Event, milestone: Milestone, key: DedupKey, now: datetime) -> bool:
        record = build_milestone_notification(event, milestone)
        try:
            channels = self.dispatcher.deliver(record)
        except DeliveryError as e:
            logger.error(
                f"Delivery failed for {event.event_id} ({event.title}) "
                f"milestone={milestone.value} at {now.isoformat()}: {e}"
            )
            if self.retract_on_failure:
                self.dedup.discard(key)
            else:
                self.dedup.mark_undelivered(key)
            return False

        logger.info(f"Sent {milestone.value} for {event.title} via {', '.join(channels)}")
        return True
