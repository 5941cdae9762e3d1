from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from match_alerts.exceptions import PersistenceError
from match_alerts.milestones import Milestone
from match_alerts.models.notification_log import NotificationLog

DEFAULT_RETENTION = timedelta(hours=24)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands DateTime columns back without tzinfo; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class DedupKey:
    event_id: str
    milestone: Milestone

    def __str__(self) -> str:
        return f"{self.event_id}:{self.milestone.value}"

    @classmethod
    def parse(cls, value: str) -> "DedupKey":
        event_id, _, milestone = value.rpartition(":")
        return cls(event_id=event_id, milestone=Milestone(milestone))


class _Entry(NamedTuple):
    event_start: datetime
    # end of the milestone's grace window; the key is needed at least until then
    closes_at: datetime
    delivered: bool


class DedupStore:
    """Set of (event, milestone) keys that have already been notified.

    Membership is answered from memory. ``add`` only records the key locally;
    ``flush`` writes new keys to ``notification_logs`` and merges back whatever
    other instances wrote, so the persisted set only ever grows by union until
    ``evict`` removes keys whose match started too long ago and whose alert
    window has closed.
    """

    def __init__(self, session_factory: sessionmaker, retention: timedelta = DEFAULT_RETENTION):
        self.session_factory = session_factory
        self.retention = retention
        self._lock = threading.Lock()
        self._entries: Dict[DedupKey, _Entry] = {}
        self._pending: Dict[DedupKey, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: DedupKey) -> bool:
        return self.contains(key)

    def contains(self, key: DedupKey) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(str(key) for key in self._entries)

    def add(
        self,
        key: DedupKey,
        event_start: datetime,
        delivered: bool = True,
        closes_at: Optional[datetime] = None,
    ) -> bool:
        """Record ``key``; returns False (and changes nothing) when it is already present.

        ``closes_at`` is when the milestone stops being due; it defaults to the event start.
        """
        with self._lock:
            if key in self._entries:
                return False
            start = _as_utc(event_start)
            entry = _Entry(start, _as_utc(closes_at) if closes_at else start, delivered)
            self._entries[key] = entry
            self._pending[key] = entry
            return True

    def discard(self, key: DedupKey) -> bool:
        """Forget a key that has not been flushed yet."""
        with self._lock:
            if key not in self._pending:
                return False
            del self._pending[key]
            del self._entries[key]
            return True

    def mark_undelivered(self, key: DedupKey) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            entry = self._entries[key]._replace(delivered=False)
            self._entries[key] = entry
            if key in self._pending:
                self._pending[key] = entry
            return True

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def load(self) -> int:
        """Merge every persisted key into memory; returns the resulting size."""
        try:
            with self.session_factory() as session:
                rows = session.execute(
                    select(
                        NotificationLog.event_id,
                        NotificationLog.milestone,
                        NotificationLog.event_start,
                        NotificationLog.window_closes_at,
                        NotificationLog.delivered,
                    )
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load dedup keys: {e}") from e

        with self._lock:
            for event_id, milestone, event_start, closes_at, delivered in rows:
                try:
                    key = DedupKey(event_id, Milestone(milestone))
                except ValueError:
                    logger.warning(f"Ignoring dedup row with unknown milestone: {event_id}:{milestone}")
                    continue
                self._entries.setdefault(
                    key, _Entry(_as_utc(event_start), _as_utc(closes_at), delivered)
                )
            return len(self._entries)

    def flush(self) -> int:
        """Persist keys added since the last flush; returns how many rows were inserted.

        On failure the keys stay pending and the next flush tries again.
        """
        with self._lock:
            pending = dict(self._pending)
        if not pending:
            return 0

        try:
            inserted = self._insert_missing(pending)
        except IntegrityError:
            # Another instance inserted some of the same keys in between; retry against fresh state
            logger.debug("Dedup flush raced with another writer, retrying")
            try:
                inserted = self._insert_missing(pending)
            except SQLAlchemyError as e:
                raise PersistenceError(f"Failed to flush dedup keys: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to flush dedup keys: {e}") from e

        with self._lock:
            for key in pending:
                self._pending.pop(key, None)

        self.load()
        logger.debug(f"Flushed {inserted} dedup keys ({len(pending) - inserted} already persisted)")
        return inserted

    def _insert_missing(self, pending: Dict[DedupKey, _Entry]) -> int:
        event_ids = {key.event_id for key in pending}
        with self.session_factory() as session:
            existing = set(
                session.execute(
                    select(NotificationLog.event_id, NotificationLog.milestone).where(
                        NotificationLog.event_id.in_(event_ids)
                    )
                ).all()
            )
            inserted = 0
            for key, entry in pending.items():
                if (key.event_id, key.milestone.value) in existing:
                    continue
                session.add(
                    NotificationLog(
                        event_id=key.event_id,
                        milestone=key.milestone.value,
                        event_start=entry.event_start,
                        window_closes_at=entry.closes_at,
                        delivered=entry.delivered,
                    )
                )
                inserted += 1
            session.commit()
        return inserted

    def evict(self, now: datetime, retention: Optional[timedelta] = None) -> int:
        """Drop keys whose match started more than ``retention`` before ``now``.

        A key whose milestone window is still open at ``now`` is always kept.
        Memory is always pruned; a storage failure is raised afterwards as PersistenceError.
        """
        now = _as_utc(now)
        cutoff = now - (retention or self.retention)
        with self._lock:
            stale = [
                key
                for key, entry in self._entries.items()
                if entry.event_start < cutoff and entry.closes_at <= now
            ]
            for key in stale:
                del self._entries[key]
                self._pending.pop(key, None)

        try:
            with self.session_factory() as session:
                result = session.execute(
                    delete(NotificationLog).where(
                        NotificationLog.event_start < cutoff,
                        NotificationLog.window_closes_at <= now,
                    )
                )
                session.commit()
                deleted = result.rowcount or 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to evict dedup keys: {e}") from e

        if stale or deleted:
            logger.info(f"Evicted {len(stale)} dedup keys from memory, {deleted} rows from storage")
        return len(stale)

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recently dispatched keys, newest first."""
        try:
            with self.session_factory() as session:
                rows = session.scalars(
                    select(NotificationLog)
                    .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
                    .limit(limit)
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read notification history: {e}") from e

        return [
            {
                "eventId": row.event_id,
                "milestone": row.milestone,
                "eventStart": _as_utc(row.event_start).isoformat(),
                "delivered": row.delivered,
                "sentAt": _as_utc(row.sent_at).isoformat(),
            }
            for row in rows
        ]
