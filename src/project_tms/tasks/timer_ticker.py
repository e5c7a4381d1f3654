# src/project_tms/tasks/timer_ticker.py

from __future__ import annotations

"""
Timer ticker.

A small polling loop that, once per interval:
- looks up the task whose timer is running,
- computes its live elapsed time,
- hands both to a display callback.

It is a pure read: total_time is only ever committed by TaskStore
(toggle_timer / transition / unload flush), never here.
"""

import asyncio
import logging
from collections.abc import Callable

from ..core.clock import SystemClock
from ..core.ports import Clock
from . import time_tracking
from .task_models import Task

logger = logging.getLogger(__name__)

TickCallback = Callable[[Task, int], None]


def tick_once(store, on_tick: TickCallback, *, clock: Clock) -> Task | None:
    """Run a single tick. Returns the active task (or None if no timer runs)."""
    task = store.active_task()
    if task is None:
        return None
    on_tick(task, time_tracking.elapsed(task.time_tracking, clock.now()))
    return task


async def run_timer_ticker(
    store,
    on_tick: TickCallback,
    *,
    clock: Clock | None = None,
    interval_seconds: float = 1.0,
) -> None:
    """
    Poll the store every interval_seconds and report the running timer.

    Errors from the store or the callback are logged and the loop keeps going.
    To stop the ticker, cancel the coroutine/task.
    """
    clock = clock or SystemClock()
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            tick_once(store, on_tick, clock=clock)
        except Exception:
            logger.exception("timer tick failed")

        await asyncio.sleep(sleep_s)
