# tests/fakes.py

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from project_tms.errors import StorageUnavailableError
from project_tms.storage.collections import empty_collection


class ManualClock:
    """
    Deterministic clock for unit tests.

    Time only moves when the test calls advance().
    """

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 15, 9, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, *, seconds: float = 0, minutes: float = 0, hours: float = 0) -> datetime:
        self.current += timedelta(seconds=seconds, minutes=minutes, hours=hours)
        return self.current


class MemoryGateway:
    """
    In-memory PersistenceGateway.

    - Stores deep copies so tests can't accidentally share state with the store
    - `fail_writes` makes write_collection return False (storage rejected)
    - `fail_collections` does the same for the named collections only
    - Records every write for assertions
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(initial or {})
        self.writes: list[tuple[str, Any]] = []
        self.fail_writes = False
        self.fail_collections: set[str] = set()

    def read_collection(self, name: str) -> Any:
        if name not in self.data:
            return empty_collection(name)
        return copy.deepcopy(self.data[name])

    def write_collection(self, name: str, value: Any) -> bool:
        if self.fail_writes or name in self.fail_collections:
            return False
        self.writes.append((name, copy.deepcopy(value)))
        self.data[name] = copy.deepcopy(value)
        return True

    def delete_collection(self, name: str) -> bool:
        self.data.pop(name, None)
        return True


class FlakyGateway(MemoryGateway):
    """MemoryGateway that can pretend the backend is unreachable."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise StorageUnavailableError("connection refused")

    def read_collection(self, name: str) -> Any:
        self._check()
        return super().read_collection(name)

    def write_collection(self, name: str, value: Any) -> bool:
        self._check()
        return super().write_collection(name, value)

    def delete_collection(self, name: str) -> bool:
        self._check()
        return super().delete_collection(name)


@dataclass(slots=True)
class RecordingSubscriber:
    """Collects (event name, payload) pairs published on a bus."""

    received: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def listen(self, bus, *names: str) -> None:
        for name in names:
            bus.subscribe(name, lambda payload, _name=name: self.received.append((_name, payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.received]

    def payloads(self, name: str) -> list[dict[str, Any]]:
        return [payload for n, payload in self.received if n == name]
