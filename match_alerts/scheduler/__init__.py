"""Periodic match checking.

Schedule overview:
  - every check_interval_seconds (60s)        - Match check tick
  - initial_check_delay_seconds after start   - First match check
  - on re-enable                              - Immediate match check
"""
from match_alerts.scheduler.jobs import MatchCheckJob, SchedulerState, TickResult
from match_alerts.scheduler.runner import AlertScheduler

__all__ = [
    "AlertScheduler",
    "MatchCheckJob",
    "SchedulerState",
    "TickResult",
]
