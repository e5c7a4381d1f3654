# tests/test_time_tracking.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from project_tms.errors import AlreadyActiveError, NotActiveError
from project_tms.tasks import time_tracking
from project_tms.tasks.task_models import TimeTracking

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


def test_stop_adds_session_to_total() -> None:
    tt = TimeTracking(total_time=5_000)
    t2 = T0 + timedelta(milliseconds=90_000)

    stopped = time_tracking.stop(time_tracking.start(tt, T0), t2)

    assert stopped.is_active is False
    assert stopped.last_started is None
    assert stopped.total_time == 5_000 + 90_000


def test_start_on_active_timer_raises_and_keeps_value() -> None:
    running = time_tracking.start(TimeTracking(), T0)
    with pytest.raises(AlreadyActiveError):
        time_tracking.start(running, T0 + timedelta(seconds=5))
    assert running.last_started == T0


def test_stop_on_inactive_timer_raises() -> None:
    tt = TimeTracking(total_time=42)
    with pytest.raises(NotActiveError):
        time_tracking.stop(tt, T0)
    assert tt.total_time == 42


def test_elapsed_never_below_committed_time() -> None:
    tt = TimeTracking(is_active=True, total_time=10_000, last_started=T0)

    assert time_tracking.elapsed(tt, T0 + timedelta(seconds=3)) == 13_000
    # Clock went backwards: the running session counts as zero.
    assert time_tracking.elapsed(tt, T0 - timedelta(minutes=1)) == 10_000
    assert time_tracking.elapsed(TimeTracking(total_time=7), T0) == 7


def test_session_time_is_zero_when_inactive() -> None:
    assert time_tracking.session_time(TimeTracking(total_time=99), T0) == 0


@pytest.mark.parametrize(
    ("ms", "text"),
    [
        (None, "0h 0m"),
        (0, "0h 0m"),
        (59_999, "0h 0m"),
        (60_000, "0h 1m"),
        (3 * 3_600_000 + 25 * 60_000, "3h 25m"),
    ],
)
def test_format_duration(ms, text) -> None:
    assert time_tracking.format_duration(ms) == text
