# src/project_tms/core/events.py

from __future__ import annotations

"""
In-process event bus.

The stores are the only publishers; front-ends and projections subscribe.

Delivery is queued: an event published while another event is being
delivered (e.g. a subscriber calls back into a store) is appended to the
queue and delivered after the current fan-out finishes. Subscribers therefore
never run nested inside each other.

A handler that raises TmsError (a failed cascade write, for instance) does
not stop the fan-out; the first such error is re-raised to the publisher once
the queue is drained. Any other handler exception is logged and dropped.
"""

import logging
import threading
from collections import deque

from ..errors import TmsError
from .ports import EventHandler, EventPayload, Unsubscribe

logger = logging.getLogger(__name__)

TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
TASK_DELETED = "task:deleted"
TASKS_BATCH_DELETED = "tasks:batchDeleted"
TASK_NOTE_ADDED = "task:noteAdded"
TIMER_STARTED = "timeTracking:started"
TIMER_STOPPED = "timeTracking:stopped"

PROJECT_CREATED = "project:created"
PROJECT_UPDATED = "project:updated"
PROJECT_DELETED = "project:deleted"

# Everything that changes what the board shows.
BOARD_EVENTS: tuple[str, ...] = (
    TASK_CREATED,
    TASK_UPDATED,
    TASK_DELETED,
    TASKS_BATCH_DELETED,
    TASK_NOTE_ADDED,
    TIMER_STARTED,
    TIMER_STOPPED,
)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._queue: deque[tuple[str, EventPayload]] = deque()
        self._delivering = False
        self._lock = threading.RLock()

    def subscribe(self, name: str, handler: EventHandler) -> Unsubscribe:
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(name)
                if handlers and handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def clear(self, name: str) -> None:
        with self._lock:
            self._handlers.pop(name, None)

    def subscriber_count(self, name: str) -> int:
        with self._lock:
            return len(self._handlers.get(name, ()))

    def publish(self, name: str, payload: EventPayload) -> None:
        with self._lock:
            self._queue.append((name, payload))
            if self._delivering:
                return
            self._delivering = True

        failure: TmsError | None = None
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        # Reset under the same lock that checked the queue, so a
                        # concurrent publish either sees the flag cleared or is drained here.
                        self._delivering = False
                        break
                    ev_name, ev_payload = self._queue.popleft()
                    handlers = list(self._handlers.get(ev_name, ()))
                error = self._deliver(ev_name, ev_payload, handlers)
                if failure is None:
                    failure = error
        except BaseException:
            with self._lock:
                self._delivering = False
            raise

        if failure is not None:
            raise failure

    @staticmethod
    def _deliver(name: str, payload: EventPayload, handlers: list[EventHandler]) -> TmsError | None:
        failure: TmsError | None = None
        for handler in handlers:
            try:
                handler(payload)
            except TmsError as exc:
                logger.error("Event handler failed event=%s handler=%r: %s", name, handler, exc)
                if failure is None:
                    failure = exc
            except Exception:
                logger.exception("Event handler failed event=%s handler=%r", name, handler)
        return failure
