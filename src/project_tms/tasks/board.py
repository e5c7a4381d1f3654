# src/project_tms/tasks/board.py

"""
Board projection: the four-column, sorted view of a project's tasks.

project_board() is a pure function of the task list. BoardView keeps a
projection current by recomputing it from the store on every mutation event,
never patching the previous result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..core import events
from ..core.ports import EventPayload, EventPublisher, TaskLister, Unsubscribe
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

PRIORITY_RANK: dict[str, int] = {"high": 0, "medium": 1, "low": 2}
_UNKNOWN_PRIORITY_RANK = 999

COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
)
COLUMN_TITLES: dict[TaskStatus, str] = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.REVIEW: "Review",
    TaskStatus.DONE: "Done",
}

_EPOCH = datetime.fromtimestamp(0, tz=UTC)

COUNT_KEYS: tuple[str, ...] = ("todo", "inProgress", "review", "done", "total")


def _zero_counts() -> dict[str, int]:
    return dict.fromkeys(COUNT_KEYS, 0)


@dataclass(frozen=True, slots=True)
class Board:
    todo: list[Task] = field(default_factory=list)
    in_progress: list[Task] = field(default_factory=list)
    review: list[Task] = field(default_factory=list)
    done: list[Task] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=_zero_counts)

    def column(self, status: TaskStatus) -> list[Task]:
        return {
            TaskStatus.TODO: self.todo,
            TaskStatus.IN_PROGRESS: self.in_progress,
            TaskStatus.REVIEW: self.review,
            TaskStatus.DONE: self.done,
        }[status]


def column_for(task: Task) -> TaskStatus:
    """Column a task is shown in; unknown statuses land in To Do."""
    return TaskStatus.parse(str(task.status)) or TaskStatus.TODO


def _due_key(due_date: str | None) -> tuple[int, datetime]:
    if due_date:
        try:
            dt = datetime.fromisoformat(due_date.strip())
        except ValueError:
            dt = None
        if dt is not None:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=UTC)
            return (0, dt)
    return (1, _EPOCH)


def sort_key(task: Task) -> tuple[Any, ...]:
    """
    Ordering inside a column:
    running timer first, then priority (high..low), then due date
    (dated before undated, earliest first), then newest created first.
    """
    return (
        0 if task.time_tracking.is_active else 1,
        PRIORITY_RANK.get(str(task.priority), _UNKNOWN_PRIORITY_RANK),
        _due_key(task.due_date),
        -task.created_at.timestamp(),
    )


def project_board(tasks: Iterable[Task]) -> Board:
    grouped: dict[TaskStatus, list[Task]] = {status: [] for status in COLUMNS}
    total = 0
    for task in tasks:
        grouped[column_for(task)].append(task)
        total += 1

    for column in grouped.values():
        column.sort(key=sort_key)

    return Board(
        todo=grouped[TaskStatus.TODO],
        in_progress=grouped[TaskStatus.IN_PROGRESS],
        review=grouped[TaskStatus.REVIEW],
        done=grouped[TaskStatus.DONE],
        counts={
            "todo": len(grouped[TaskStatus.TODO]),
            "inProgress": len(grouped[TaskStatus.IN_PROGRESS]),
            "review": len(grouped[TaskStatus.REVIEW]),
            "done": len(grouped[TaskStatus.DONE]),
            "total": total,
        },
    )


class BoardView:
    """
    Observer that keeps `board` in sync with the store for one project.

    Subscribes to every board-affecting event and recomputes the whole
    projection each time; `on_render` is called with the fresh Board.
    """

    def __init__(
        self,
        store: TaskLister,
        bus: EventPublisher,
        *,
        project_id: str | None = None,
        on_render: Callable[[Board], None] | None = None,
    ) -> None:
        self._store = store
        self._on_render = on_render
        self.project_id = project_id
        self.board = Board()
        self.renders = 0
        self._unsubscribers: list[Unsubscribe] = [
            bus.subscribe(name, self._on_event) for name in events.BOARD_EVENTS
        ]
        if project_id is not None:
            self.refresh()

    def select_project(self, project_id: str | None) -> Board:
        self.project_id = project_id
        return self.refresh()

    def refresh(self) -> Board:
        if self.project_id is None:
            self.board = Board()
        else:
            self.board = project_board(self._store.list_tasks(self.project_id))
        self.renders += 1
        if self._on_render is not None:
            self._on_render(self.board)
        return self.board

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _on_event(self, payload: EventPayload) -> None:
        if self.project_id is None:
            return
        project_id = payload.get("projectId")
        if project_id is not None and project_id != self.project_id:
            return
        logger.debug("Board refresh project=%s", self.project_id)
        self.refresh()
