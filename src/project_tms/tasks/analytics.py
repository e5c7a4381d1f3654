# src/project_tms/tasks/analytics.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from . import time_tracking
from .board import column_for
from .task_models import Task, TaskStatus

_COUNT_KEYS: dict[TaskStatus, str] = {
    TaskStatus.TODO: "todo",
    TaskStatus.IN_PROGRESS: "inProgress",
    TaskStatus.REVIEW: "review",
    TaskStatus.DONE: "done",
}


@dataclass(frozen=True, slots=True)
class ProjectSummary:
    total: int
    counts: dict[str, int] = field(default_factory=dict)
    completion_rate: float = 0.0  # 0..1
    tracked_time: int = 0  # ms, includes a running session
    time_by_status: dict[str, int] = field(default_factory=dict)
    average_time_per_task: int = 0


def summarize_project(tasks: Iterable[Task], now: datetime) -> ProjectSummary:
    """Counts, completion rate and tracked time for a set of tasks."""
    counts = {key: 0 for key in _COUNT_KEYS.values()}
    time_by_status = {key: 0 for key in _COUNT_KEYS.values()}
    total = 0
    tracked = 0

    for task in tasks:
        key = _COUNT_KEYS[column_for(task)]
        spent = time_tracking.elapsed(task.time_tracking, now)
        counts[key] += 1
        time_by_status[key] += spent
        tracked += spent
        total += 1

    return ProjectSummary(
        total=total,
        counts=counts,
        completion_rate=(counts["done"] / total) if total else 0.0,
        tracked_time=tracked,
        time_by_status=time_by_status,
        average_time_per_task=(tracked // total) if total else 0,
    )
