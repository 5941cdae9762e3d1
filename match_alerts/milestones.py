"""Lifecycle milestones of a match and when each one is due.

Every milestone kind is one row of ``MILESTONE_RULES``: an anchor (the match
start or end), an offset from that anchor, and a grace period. A milestone is
due while ``trigger <= now < trigger + grace``; once the grace period has
passed it never becomes due again, so a scheduler that was down for a while
only catches up on alerts that are still reasonably fresh.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from match_alerts.feed.base import Event


class Milestone(enum.Enum):
    pre_start_far = "pre_start_far"
    pre_start_near = "pre_start_near"
    started = "started"
    ended = "ended"


class Anchor(enum.Enum):
    start = "start"
    end = "end"


@dataclass(frozen=True)
class MilestoneRule:
    anchor: Anchor
    offset: timedelta
    grace: timedelta


MILESTONE_RULES: Mapping[Milestone, MilestoneRule] = {
    Milestone.pre_start_far: MilestoneRule(Anchor.start, timedelta(minutes=-15), timedelta(minutes=5)),
    Milestone.pre_start_near: MilestoneRule(Anchor.start, timedelta(minutes=-5), timedelta(minutes=5)),
    Milestone.started: MilestoneRule(Anchor.start, timedelta(0), timedelta(minutes=5)),
    Milestone.ended: MilestoneRule(Anchor.end, timedelta(0), timedelta(minutes=30)),
}

ALL_MILESTONES: FrozenSet[Milestone] = frozenset(Milestone)


def trigger_time(event: Event, milestone: Milestone) -> datetime:
    rule = MILESTONE_RULES[milestone]
    anchor = event.start if rule.anchor is Anchor.start else event.end
    return anchor + rule.offset


def window_close(event: Event, milestone: Milestone) -> datetime:
    """First instant at which ``milestone`` is no longer due."""
    return trigger_time(event, milestone) + MILESTONE_RULES[milestone].grace


def _window(event: Event, milestone: Milestone) -> Optional[Tuple[datetime, datetime]]:
    # None when the window lies outside the representable datetime range
    try:
        return trigger_time(event, milestone), window_close(event, milestone)
    except OverflowError:
        return None


def is_due(event: Event, milestone: Milestone, now: datetime) -> bool:
    window = _window(event, milestone)
    return window is not None and window[0] <= now < window[1]


def due_milestones(
    event: Event,
    now: datetime,
    enabled: Optional[Iterable[Milestone]] = None,
) -> FrozenSet[Milestone]:
    """Milestones of ``event`` whose window contains ``now``.

    Args:
        event: The match to evaluate.
        now: Reference time (aware).
        enabled: Kinds to consider; ``None`` means all. A kind left out is
            never reported as due.
    """
    kinds = ALL_MILESTONES if enabled is None else frozenset(enabled)
    return frozenset(kind for kind in kinds if is_due(event, kind, now))


def next_trigger(
    events: Iterable[Event],
    now: datetime,
    enabled: Optional[Iterable[Milestone]] = None,
) -> Optional[Tuple[Event, Milestone, datetime]]:
    """最近一個尚未到達的提醒時間 (event, milestone, trigger)"""
    kinds = ALL_MILESTONES if enabled is None else frozenset(enabled)
    upcoming = []
    for event in events:
        for kind in kinds:
            window = _window(event, kind)
            if window is not None and window[0] > now:
                upcoming.append((event, kind, window[0]))
    if not upcoming:
        return None
    return min(upcoming, key=lambda item: item[2])


def format_time_until(delta: timedelta) -> Optional[str]:
    """Short countdown such as "2d 3h", "1h 5m" or "12m"; None once it has passed."""
    if delta <= timedelta(0):
        return None
    minutes = int(delta.total_seconds() // 60)
    hours, days = minutes // 60, minutes // (60 * 24)
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"
