# src/project_tms/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class TaskStatus(StrEnum):
    """Board column a task sits in. Any status may move to any other."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, raw: str | None) -> Priority | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class TimeTracking:
    is_active: bool = False
    total_time: int = 0  # milliseconds
    last_started: datetime | None = None


@dataclass(frozen=True, slots=True)
class Note:
    id: str
    text: str
    created_at: datetime


@dataclass(slots=True)
class Task:
    """
    A task record.

    `status` and `priority` normally hold enum members. Records loaded from
    storage keep unknown raw strings so that they survive a save untouched;
    the board projection decides where such tasks are shown.

    The store never mutates a Task in place: every change builds a new one
    with dataclasses.replace().
    """

    id: str
    project_id: str
    title: str
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    assignee: str | None = None
    due_date: str | None = None

    started_at: datetime | None = None
    completed_at: datetime | None = None

    notes: tuple[Note, ...] = ()
    time_tracking: TimeTracking = field(default_factory=TimeTracking)

    # Unknown keys from older/newer clients, written back on save.
    extra: dict[str, Any] = field(default_factory=dict)


# ---- wire format (camelCase JSON, ISO-8601 timestamps) ----

_TASK_KEYS = {
    "id",
    "projectId",
    "title",
    "description",
    "assignee",
    "dueDate",
    "priority",
    "status",
    "startedAt",
    "completedAt",
    "notes",
    "timeTracking",
    "createdAt",
    "updatedAt",
}


def format_ts(value: datetime | None) -> str | None:
    """Serialize like JavaScript's Date.toISOString(): UTC, milliseconds, 'Z'."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_ts(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, (int, float)):
        # Epoch milliseconds (Date.now()).
        dt = datetime.fromtimestamp(float(raw) / 1000.0, tz=UTC)
    else:
        try:
            dt = datetime.fromisoformat(str(raw).strip())
        except ValueError:
            logger.warning("Unparseable timestamp %r; treating as missing", raw)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _opt_str(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


def time_tracking_from_wire(raw: Any) -> TimeTracking:
    """Missing or malformed timeTracking reads as a zeroed, inactive timer."""
    if not isinstance(raw, dict):
        return TimeTracking()

    try:
        total = int(raw.get("totalTime") or 0)
    except (TypeError, ValueError):
        total = 0
    total = max(0, total)

    last_started = parse_ts(raw.get("lastStarted"))
    is_active = bool(raw.get("isActive")) and last_started is not None
    return TimeTracking(
        is_active=is_active,
        total_time=total,
        last_started=last_started if is_active else None,
    )


def time_tracking_to_wire(tt: TimeTracking) -> dict[str, Any]:
    return {
        "isActive": tt.is_active,
        "totalTime": int(tt.total_time),
        "lastStarted": format_ts(tt.last_started),
    }


def note_to_wire(note: Note) -> dict[str, Any]:
    return {"id": note.id, "text": note.text, "createdAt": format_ts(note.created_at)}


def _notes_from_wire(raw: Any, fallback_ts: datetime) -> tuple[Note, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[Note] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if text is None:
            continue
        out.append(
            Note(
                id=str(item.get("id") or ""),
                text=str(text),
                created_at=parse_ts(item.get("createdAt")) or fallback_ts,
            )
        )
    return tuple(out)


def task_from_wire(raw: dict[str, Any]) -> Task | None:
    """
    Build a Task from a stored JSON object.

    Returns None for records without an id (cannot be addressed).
    """
    task_id = raw.get("id")
    if task_id is None or str(task_id).strip() == "":
        logger.warning("Skipping stored task without id: %r", raw.get("title"))
        return None

    created_at = parse_ts(raw.get("createdAt")) or datetime.fromtimestamp(0, tz=UTC)
    updated_at = parse_ts(raw.get("updatedAt")) or created_at

    status_raw = str(raw.get("status") or TaskStatus.TODO.value)
    status: str = TaskStatus.parse(status_raw) or status_raw

    priority_raw = str(raw.get("priority") or Priority.MEDIUM.value)
    priority: str = Priority.parse(priority_raw) or priority_raw

    return Task(
        id=str(task_id),
        project_id=str(raw.get("projectId") or ""),
        title=str(raw.get("title") or ""),
        status=status,
        priority=priority,
        created_at=created_at,
        updated_at=updated_at,
        description=_opt_str(raw.get("description")),
        assignee=_opt_str(raw.get("assignee")),
        due_date=_opt_str(raw.get("dueDate")),
        started_at=parse_ts(raw.get("startedAt")),
        completed_at=parse_ts(raw.get("completedAt")),
        notes=_notes_from_wire(raw.get("notes"), created_at),
        time_tracking=time_tracking_from_wire(raw.get("timeTracking")),
        extra={k: v for k, v in raw.items() if k not in _TASK_KEYS},
    )


def task_to_wire(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = dict(task.extra)
    out.update(
        {
            "id": task.id,
            "projectId": task.project_id,
            "title": task.title,
            "description": task.description,
            "assignee": task.assignee,
            "dueDate": task.due_date,
            "priority": str(task.priority),
            "status": str(task.status),
            "startedAt": format_ts(task.started_at),
            "completedAt": format_ts(task.completed_at),
            "notes": [note_to_wire(n) for n in task.notes],
            "timeTracking": time_tracking_to_wire(task.time_tracking),
            "createdAt": format_ts(task.created_at),
            "updatedAt": format_ts(task.updated_at),
        }
    )
    return out
