# src/project_tms/connectors/ticker_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.state import AppState, LiveTimer
from ..tasks.task_models import Task
from ..tasks.timer_ticker import run_timer_ticker

logger = logging.getLogger(__name__)


@dataclass
class TickerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except RuntimeError:
            logger.debug("Ticker loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_ticker_in_background(state: AppState) -> TickerBackgroundRunner | None:
    """
    Run the timer ticker in a background thread with its own event loop
    (the console REPL blocks on input()).

    Each tick stores the live elapsed time in state.live_timer; /timer and
    /status read it.
    """
    settings = state.settings
    if not settings.ticker_enabled:
        logger.info("Timer ticker disabled, not starting.")
        return None

    def on_tick(task: Task, elapsed_ms: int) -> None:
        state.live_timer = LiveTimer(task_id=task.id, title=task.title, elapsed_ms=elapsed_ms)

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_timer_ticker(
                state.task_store,
                on_tick,
                clock=state.clock,
                interval_seconds=settings.tick_interval_seconds,
            )
        )

        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            with contextlib.suppress(asyncio.CancelledError):
                loop.run_until_complete(task)
        finally:
            loop.close()
            logger.info("Timer ticker stopped.")

    t = threading.Thread(target=runner, name="timer-ticker", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Ticker thread did not initialize properly.")
        return None

    logger.info("Timer ticker started (interval=%.2fs).", settings.tick_interval_seconds)
    return TickerBackgroundRunner(thread=t, loop=loop, task=task)
