# src/project_tms/core/ids.py

from __future__ import annotations

import threading
from datetime import datetime


class IdGenerator:
    """
    Millisecond-timestamp ids (the format existing data files use),
    bumped so that every id issued by this process is strictly increasing.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def observe(self, existing_id: str) -> None:
        """Never hand out an id at or below one already in storage."""
        try:
            n = int(existing_id)
        except (TypeError, ValueError):
            return
        with self._lock:
            self._last = max(self._last, n)

    def next_id(self, now: datetime) -> str:
        ms = int(now.timestamp() * 1000)
        with self._lock:
            self._last = max(ms, self._last + 1)
            return str(self._last)
