# src/project_tms/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The stores depend on Protocols instead of concrete implementations.
This keeps storage backends and front-ends swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

EventPayload = dict[str, Any]
EventHandler = Callable[[EventPayload], None]
Unsubscribe = Callable[[], None]

# Collection value as stored on the wire: a list of records or a settings map.
Collection = list[dict[str, Any]] | dict[str, Any]


class Clock(Protocol):
    """Time source. Must return timezone-aware UTC datetimes."""

    def now(self) -> datetime: ...


class PersistenceGateway(Protocol):
    """
    Durable storage of named collections (tasks, projects, settings, ...).

    - read_collection returns [] for list collections (tasks/projects) and {}
      for anything else when nothing is stored yet.
    - write_collection returns True on success. Implementations either return
      False or raise PersistenceError on failure; callers handle both.
    """

    def read_collection(self, name: str) -> Collection: ...

    def write_collection(self, name: str, value: Collection) -> bool: ...

    def delete_collection(self, name: str) -> bool: ...


class EventPublisher(Protocol):
    def publish(self, name: str, payload: EventPayload) -> None: ...

    def subscribe(self, name: str, handler: EventHandler) -> Unsubscribe: ...


class TaskLister(Protocol):
    def list_tasks(self, project_id: str | None = None) -> list[Any]: ...
