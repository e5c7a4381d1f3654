# src/project_tms/tasks/time_tracking.py

from __future__ import annotations

"""
Timer math for a single task.

All functions are pure: they take the current TimeTracking value and `now`
and return a new value (TimeTracking is frozen). Only stop() commits elapsed
time into total_time; elapsed() is a read.
"""

from datetime import datetime, timedelta

from ..errors import AlreadyActiveError, NotActiveError
from .task_models import TimeTracking

_MS = timedelta(milliseconds=1)


def session_time(tt: TimeTracking, now: datetime) -> int:
    """Milliseconds in the running session; 0 when inactive or on clock skew."""
    if not tt.is_active or tt.last_started is None:
        return 0
    return max(0, (now - tt.last_started) // _MS)


def elapsed(tt: TimeTracking, now: datetime) -> int:
    """Committed time plus the running session. Never below total_time."""
    return max(0, int(tt.total_time)) + session_time(tt, now)


def start(tt: TimeTracking, now: datetime) -> TimeTracking:
    if tt.is_active:
        raise AlreadyActiveError("Timer is already running")
    return TimeTracking(is_active=True, total_time=tt.total_time, last_started=now)


def stop(tt: TimeTracking, now: datetime) -> TimeTracking:
    if not tt.is_active:
        raise NotActiveError("Timer is not running")
    return TimeTracking(
        is_active=False,
        total_time=tt.total_time + session_time(tt, now),
        last_started=None,
    )


def format_duration(ms: int | None) -> str:
    """'3h 25m' style display used by the console board."""
    if not ms or ms < 0:
        return "0h 0m"
    hours = ms // 3_600_000
    minutes = (ms % 3_600_000) // 60_000
    return f"{hours}h {minutes}m"
