# src/project_tms/core/clock.py

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)
