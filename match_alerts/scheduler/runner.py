from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger
from sqlalchemy.orm import sessionmaker

from match_alerts.config import get_settings
from match_alerts.exceptions import DeliveryError, PersistenceError
from match_alerts.feed.base import BaseEventFeed
from match_alerts.feed.http import HttpEventFeed
from match_alerts.milestones import Milestone, format_time_until, next_trigger
from match_alerts.notifications.dispatcher import NotificationDispatcher
from match_alerts.notifications.formatter import build_test_notification
from match_alerts.scheduler.jobs import MatchCheckJob, SchedulerState, TickResult, utc_now
from match_alerts.storage.dedup import DedupStore
from match_alerts.storage.settings import NotificationSettings, SettingsStore

CHECK_JOB_ID = "match_check"
INITIAL_CHECK_JOB_ID = "initial_match_check"
IMMEDIATE_CHECK_JOB_ID = "immediate_match_check"


class AlertScheduler:
    """Owns the timer, the runtime settings and the dedup state of one process."""

    def __init__(
        self,
        feed: BaseEventFeed,
        dispatcher: NotificationDispatcher,
        dedup: DedupStore,
        settings_store: Optional[SettingsStore] = None,
        *,
        check_interval_seconds: Optional[int] = None,
        initial_delay_seconds: Optional[int] = None,
        retract_on_failure: Optional[bool] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        config = get_settings()
        self.feed = feed
        self.dispatcher = dispatcher
        self.dedup = dedup
        self.settings_store = settings_store
        self.clock = clock
        self.check_interval_seconds = check_interval_seconds or config.check_interval_seconds
        self.initial_delay_seconds = (
            initial_delay_seconds
            if initial_delay_seconds is not None
            else config.initial_check_delay_seconds
        )
        if retract_on_failure is None:
            retract_on_failure = config.retract_on_failure

        self._settings_lock = threading.Lock()
        self._settings = self._load_settings(NotificationSettings(enabled=config.notification_enabled))
        self._scheduler: Optional[BackgroundScheduler] = None

        self.job = MatchCheckJob(
            feed=feed,
            dispatcher=dispatcher,
            dedup=dedup,
            settings_provider=self.get_notification_settings,
            clock=clock,
            retract_on_failure=retract_on_failure,
        )

    @classmethod
    def from_config(cls, session_factory: sessionmaker) -> "AlertScheduler":
        """Wire the HTTP feed, configured channels and SQL-backed stores from settings."""
        config = get_settings()
        return cls(
            feed=HttpEventFeed(),
            dispatcher=NotificationDispatcher(),
            dedup=DedupStore(session_factory, timedelta(hours=config.dedup_retention_hours)),
            settings_store=SettingsStore(session_factory),
        )

    def _load_settings(self, default: NotificationSettings) -> NotificationSettings:
        if self.settings_store is None:
            return default
        try:
            return self.settings_store.load(default)
        except PersistenceError as e:
            logger.error(f"Using default notification settings: {e}")
            return default

    # -- lifecycle --------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            logger.debug("Alert scheduler already running")
            return

        try:
            loaded = self.dedup.load()
            logger.info(f"Loaded {loaded} dedup keys")
        except PersistenceError as e:
            logger.error(f"Starting with an empty dedup set: {e}")

        scheduler = BackgroundScheduler(job_defaults={"coalesce": True, "max_instances": 1})

        # 固定間隔檢查比賽
        scheduler.add_job(
            self.job.run,
            "interval",
            seconds=self.check_interval_seconds,
            id=CHECK_JOB_ID,
            name="Match Check",
        )

        # 啟動後不久先檢查一次，避免錯過即將開始的比賽
        scheduler.add_job(
            self.job.run,
            "date",
            run_date=self.clock() + timedelta(seconds=self.initial_delay_seconds),
            id=INITIAL_CHECK_JOB_ID,
            name="Initial Match Check",
        )

        if not self.get_notification_settings().enabled:
            scheduler.pause_job(CHECK_JOB_ID)

        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Alert scheduler started (every {self.check_interval_seconds}s)")

    def stop(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Alert scheduler stopped")

    def get_jobs(self) -> List[Dict[str, Any]]:
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(job.next_run_time) if job.next_run_time else None,
            }
            for job in self._scheduler.get_jobs()
        ]

    # -- commands -----------------------------------------------------------

    def get_notification_settings(self) -> NotificationSettings:
        with self._settings_lock:
            return self._settings

    def update_settings(self, partial: Mapping[str, Any]) -> NotificationSettings:
        """Apply a partial settings update; it takes effect from the next tick."""
        with self._settings_lock:
            previous = self._settings
            self._settings = previous.merged(partial)
            current = self._settings

        if self.settings_store is not None:
            try:
                self.settings_store.save(current)
            except PersistenceError as e:
                logger.error(f"Settings changed in memory only: {e}")

        logger.info(f"Notification settings updated: {current.to_public()}")
        if current.enabled and not previous.enabled:
            self._on_enabled()
        elif previous.enabled and not current.enabled:
            self._on_disabled()
        return current

    def _on_enabled(self) -> None:
        logger.info("Notifications enabled, checking matches now")
        if not self.running:
            self.job.run()
            return
        self._scheduler.resume_job(CHECK_JOB_ID)
        self._scheduler.add_job(
            self.job.run,
            "date",
            id=IMMEDIATE_CHECK_JOB_ID,
            name="Immediate Match Check",
            replace_existing=True,
        )

    def _on_disabled(self) -> None:
        logger.info("Notifications disabled")
        if self.running:
            self._scheduler.pause_job(CHECK_JOB_ID)

    def force_check_now(self) -> TickResult:
        logger.info("Forced match check requested")
        return self.job.run()

    def send_test_notification(self, milestone: Optional[Milestone] = None) -> bool:
        if not self.get_notification_settings().enabled:
            logger.info("Cannot send test notification: notifications disabled")
            return False

        record = build_test_notification(milestone, self.clock())
        try:
            channels = self.dispatcher.deliver(record)
        except DeliveryError as e:
            logger.error(f"Test notification failed: {e}")
            return False
        logger.info(f"Test notification sent via {', '.join(channels)}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        settings = self.get_notification_settings()
        now = self.clock()
        events = list(self.job.events)
        last_check = self.job.last_check

        next_notification = None
        upcoming = next_trigger(events, now, settings.enabled_milestones())
        if upcoming is not None:
            event, milestone, trigger = upcoming
            next_notification = {
                "eventId": event.event_id,
                "milestone": milestone.value,
                "teams": event.title,
                "triggerAt": trigger.isoformat(),
                "timeUntil": format_time_until(trigger - now),
            }

        state = SchedulerState.disabled if not settings.enabled else self.job.state
        return {
            "eventCount": len(events),
            "dedupCount": len(self.dedup),
            "settings": settings.to_public(),
            "lastCheckTimestamp": last_check.isoformat() if last_check else None,
            "state": state.value,
            "running": self.running,
            "channels": self.dispatcher.channels,
            "nextNotification": next_notification,
        }
