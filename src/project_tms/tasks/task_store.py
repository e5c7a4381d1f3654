# src/project_tms/tasks/task_store.py

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core import events
from ..core.clock import SystemClock
from ..core.ids import IdGenerator
from ..core.ports import Clock, EventPayload, EventPublisher, PersistenceGateway
from ..errors import InvalidStateError, NotFoundError, PersistenceError, ValidationError
from ..validation import optional_date, optional_text, require_text
from . import time_tracking
from .task_models import (
    Note,
    Priority,
    Task,
    TaskStatus,
    format_ts,
    note_to_wire,
    task_from_wire,
    task_to_wire,
)

logger = logging.getLogger(__name__)

TASKS_COLLECTION = "tasks"

_EDITABLE_FIELDS = frozenset({"title", "description", "assignee", "due_date", "priority", "status"})

_PendingEvents = list[tuple[str, EventPayload]]


def _parse_status(raw: Any) -> TaskStatus:
    status = TaskStatus.parse(raw if isinstance(raw, str) else None)
    if status is None:
        raise ValidationError(f"Unknown status: {raw!r}")
    return status


def _parse_priority(raw: Any) -> Priority:
    priority = Priority.parse(raw if isinstance(raw, str) else None)
    if priority is None:
        raise ValidationError(f"Unknown priority: {raw!r}")
    return priority


class TaskStore:
    """
    Owns the task collection and every rule about how tasks change.

    Persistence:
    - the whole collection is written through the gateway on each mutation
    - in-memory state is swapped only after the gateway confirms the write,
      so a failed write (PersistenceError) leaves the store unchanged

    Thread-safety:
    - one re-entrant lock guards every read-modify-write, including the
      "stop the other timer, start this one" unit of toggle_timer
    - events are published after the lock is released
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: EventPublisher,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._gateway = gateway
        self._bus = bus
        self._clock: Clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._ids = IdGenerator()
        self._tasks: dict[str, Task] = {}

        self.reload()
        self._unsubscribe = bus.subscribe(events.PROJECT_DELETED, self._on_project_deleted)
        logger.info("TaskStore ready total=%s", len(self._tasks))

    def close(self) -> None:
        self._unsubscribe()

    # ---- low-level helpers ----

    def reload(self) -> None:
        """Re-read the tasks collection from storage (e.g. after an import)."""
        raw = self._gateway.read_collection(TASKS_COLLECTION)
        if not isinstance(raw, list):
            logger.warning("Stored tasks collection is not a list (%s); starting empty", type(raw).__name__)
            raw = []

        loaded: dict[str, Task] = {}
        for item in raw:
            if not isinstance(item, dict):
                continue
            task = task_from_wire(item)
            if task is None:
                continue
            if task.id in loaded:
                logger.warning("Duplicate task id=%s in storage; keeping the last one", task.id)
            loaded[task.id] = task
            self._ids.observe(task.id)
            for note in task.notes:
                self._ids.observe(note.id)

        active = [t.id for t in loaded.values() if t.time_tracking.is_active]
        if len(active) > 1:
            logger.warning("Stored data has %d active timers: %s", len(active), active)

        with self._lock:
            self._tasks = loaded

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(str(task_id))
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def _commit(self, new_tasks: dict[str, Task]) -> None:
        """Persist the given collection; swap it in only on success. Caller holds the lock."""
        payload = [task_to_wire(t) for t in new_tasks.values()]
        try:
            ok = self._gateway.write_collection(TASKS_COLLECTION, payload)
        except PersistenceError:
            logger.exception("Failed to persist tasks (%d records)", len(payload))
            raise
        except Exception as exc:
            logger.exception("Failed to persist tasks (%d records)", len(payload))
            raise PersistenceError(f"Failed to save tasks: {exc}") from exc
        if not ok:
            logger.error("Storage rejected tasks write (%d records)", len(payload))
            raise PersistenceError("Failed to save tasks")
        self._tasks = new_tasks

    def _publish(self, pending: _PendingEvents) -> None:
        for name, payload in pending:
            self._bus.publish(name, payload)

    @staticmethod
    def _stopped_event(task: Task, session_ms: int) -> tuple[str, EventPayload]:
        return (
            events.TIMER_STOPPED,
            {
                "taskId": task.id,
                "projectId": task.project_id,
                "sessionTime": session_ms,
                "totalTime": task.time_tracking.total_time,
                "task": task,
            },
        )

    @staticmethod
    def _status_changes(
        task: Task, new_status: TaskStatus, now: datetime
    ) -> tuple[dict[str, Any], int | None]:
        """
        Field changes that accompany a status change.

        Returns (changes, stopped_session_ms); the second item is None unless a
        running timer had to be stopped.
        """
        changes: dict[str, Any] = {"status": new_status}
        old = task.status

        if new_status == TaskStatus.IN_PROGRESS and task.started_at is None:
            changes["started_at"] = now

        if new_status == TaskStatus.DONE and old != TaskStatus.DONE:
            changes["completed_at"] = now
        elif new_status != TaskStatus.DONE and old == TaskStatus.DONE:
            changes["completed_at"] = None

        stopped: int | None = None
        tt = task.time_tracking
        # A timer only runs on an in-progress task.
        if new_status != TaskStatus.IN_PROGRESS and tt.is_active:
            stopped = time_tracking.session_time(tt, now)
            changes["time_tracking"] = time_tracking.stop(tt, now)

        return changes, stopped

    def _update_locked(self, task: Task, patch: dict[str, Any]) -> tuple[Task, _PendingEvents]:
        unknown = set(patch) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        now = self._clock.now()
        changes: dict[str, Any] = {}

        if "title" in patch:
            changes["title"] = require_text(patch["title"], "title")
        for key in ("description", "assignee"):
            if key in patch:
                changes[key] = optional_text(patch[key])
        if "due_date" in patch:
            changes["due_date"] = optional_date(patch["due_date"], "due_date")
        if "priority" in patch:
            changes["priority"] = _parse_priority(patch["priority"])

        stopped: int | None = None
        if "status" in patch:
            new_status = _parse_status(patch["status"])
            if new_status != task.status:
                status_changes, stopped = self._status_changes(task, new_status, now)
                changes.update(status_changes)

        updated = replace(task, **changes, updated_at=now)
        new_tasks = dict(self._tasks)
        new_tasks[task.id] = updated
        self._commit(new_tasks)

        pending: _PendingEvents = []
        if stopped is not None:
            pending.append(self._stopped_event(updated, stopped))
        pending.append((events.TASK_UPDATED, {"taskId": updated.id, "projectId": updated.project_id, "task": updated}))
        return updated, pending

    # ---- queries ----

    def get(self, task_id: str) -> Task:
        with self._lock:
            return self._require(task_id)

    def list_tasks(self, project_id: str | None = None) -> list[Task]:
        with self._lock:
            tasks = list(self._tasks.values())
        if project_id is None:
            return tasks
        return [t for t in tasks if t.project_id == project_id]

    def active_task(self) -> Task | None:
        with self._lock:
            for task in self._tasks.values():
                if task.time_tracking.is_active:
                    return task
        return None

    def count_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)

    # ---- mutations ----

    def create(
        self,
        *,
        project_id: str,
        title: str,
        description: str | None = None,
        assignee: str | None = None,
        due_date: str | None = None,
        priority: str = Priority.MEDIUM,
        status: str = TaskStatus.TODO,
    ) -> Task:
        clean_title = require_text(title, "title")
        clean_project = require_text(project_id, "project_id")
        clean_priority = _parse_priority(priority)
        clean_status = _parse_status(status)
        clean_due = optional_date(due_date, "due_date")

        with self._lock:
            now = self._clock.now()
            task = Task(
                id=self._ids.next_id(now),
                project_id=clean_project,
                title=clean_title,
                status=TaskStatus.TODO,
                priority=clean_priority,
                created_at=now,
                updated_at=now,
                description=optional_text(description),
                assignee=optional_text(assignee),
                due_date=clean_due,
            )
            if clean_status != TaskStatus.TODO:
                changes, _ = self._status_changes(task, clean_status, now)
                task = replace(task, **changes)

            new_tasks = dict(self._tasks)
            new_tasks[task.id] = task
            self._commit(new_tasks)

        logger.debug("Task created id=%s project=%s status=%s", task.id, task.project_id, task.status)
        self._publish([(events.TASK_CREATED, {"taskId": task.id, "projectId": task.project_id, "task": task})])
        return task

    def update(self, task_id: str, **patch: Any) -> Task:
        """
        Edit task fields. A status in the patch gets the same side effects as
        transition(); other system fields (timer, timestamps, notes) are not editable.
        """
        with self._lock:
            task = self._require(task_id)
            updated, pending = self._update_locked(task, patch)
        self._publish(pending)
        return updated

    def transition(self, task_id: str, new_status: str) -> Task:
        status = _parse_status(new_status)
        with self._lock:
            task = self._require(task_id)
            if task.status == status:
                return task
            updated, pending = self._update_locked(task, {"status": status})

        logger.info("Task %s %s -> %s", updated.id, task.status, updated.status)
        self._publish(pending)
        return updated

    def toggle_timer(self, task_id: str) -> Task:
        """
        Start or stop the task's timer.

        Starting first stops any other running timer; the stop(s) and the
        start are persisted in a single write.
        """
        with self._lock:
            task = self._require(task_id)
            if task.status != TaskStatus.IN_PROGRESS:
                raise InvalidStateError("Timer can only run on an in-progress task")

            now = self._clock.now()
            new_tasks = dict(self._tasks)
            pending: _PendingEvents = []
            tt = task.time_tracking

            if tt.is_active:
                session = time_tracking.session_time(tt, now)
                updated = replace(task, time_tracking=time_tracking.stop(tt, now), updated_at=now)
                pending.append(self._stopped_event(updated, session))
            else:
                for other in self._tasks.values():
                    if other.id == task.id or not other.time_tracking.is_active:
                        continue
                    session = time_tracking.session_time(other.time_tracking, now)
                    paused = replace(
                        other,
                        time_tracking=time_tracking.stop(other.time_tracking, now),
                        updated_at=now,
                    )
                    new_tasks[other.id] = paused
                    pending.append(self._stopped_event(paused, session))
                    logger.debug("Paused timer on task %s before starting %s", other.id, task.id)

                updated = replace(
                    task,
                    time_tracking=time_tracking.start(tt, now),
                    started_at=task.started_at or now,
                    updated_at=now,
                )
                pending.append(
                    (
                        events.TIMER_STARTED,
                        {
                            "taskId": updated.id,
                            "projectId": updated.project_id,
                            "startedAt": format_ts(now),
                            "totalTime": updated.time_tracking.total_time,
                            "task": updated,
                        },
                    )
                )

            new_tasks[task.id] = updated
            self._commit(new_tasks)

        self._publish(pending)
        return updated

    def add_note(self, task_id: str, text: str) -> Task:
        clean = require_text(text, "note")
        with self._lock:
            task = self._require(task_id)
            now = self._clock.now()
            note = Note(id=self._ids.next_id(now), text=clean, created_at=now)
            updated = replace(task, notes=(*task.notes, note), updated_at=now)
            new_tasks = dict(self._tasks)
            new_tasks[task.id] = updated
            self._commit(new_tasks)

        self._publish(
            [
                (
                    events.TASK_NOTE_ADDED,
                    {
                        "taskId": updated.id,
                        "projectId": updated.project_id,
                        "note": note_to_wire(note),
                        "task": updated,
                    },
                )
            ]
        )
        return updated

    def delete(self, task_id: str) -> bool:
        with self._lock:
            task = self._tasks.get(str(task_id))
            if task is None:
                return False
            new_tasks = dict(self._tasks)
            del new_tasks[task.id]
            self._commit(new_tasks)

        logger.debug("Task deleted id=%s", task.id)
        self._publish([(events.TASK_DELETED, {"taskId": task.id, "projectId": task.project_id})])
        return True

    def delete_all_for_project(self, project_id: str) -> int:
        with self._lock:
            removed = [t.id for t in self._tasks.values() if t.project_id == project_id]
            if not removed:
                return 0
            new_tasks = {tid: t for tid, t in self._tasks.items() if t.project_id != project_id}
            self._commit(new_tasks)

        logger.info("Deleted %d tasks of project %s", len(removed), project_id)
        self._publish([(events.TASKS_BATCH_DELETED, {"projectId": project_id, "taskIds": removed})])
        return len(removed)

    def flush_active_timer_on_unload(self, now: datetime | None = None) -> Task | None:
        """
        Stop and persist any running timer. Called once at teardown so the
        open session is not lost when the process exits.

        Returns the task whose timer was stopped, or None.
        """
        with self._lock:
            active = [t for t in self._tasks.values() if t.time_tracking.is_active]
            if not active:
                return None

            ts = now or self._clock.now()
            new_tasks = dict(self._tasks)
            pending: _PendingEvents = []
            flushed: Task | None = None
            for task in active:
                session = time_tracking.session_time(task.time_tracking, ts)
                flushed = replace(task, time_tracking=time_tracking.stop(task.time_tracking, ts), updated_at=ts)
                new_tasks[task.id] = flushed
                pending.append(self._stopped_event(flushed, session))
            self._commit(new_tasks)

        logger.info("Flushed active timer on unload task=%s", flushed.id if flushed else None)
        self._publish(pending)
        return flushed

    # ---- event handlers ----

    def _on_project_deleted(self, payload: EventPayload) -> None:
        project_id = payload.get("projectId")
        if project_id:
            self.delete_all_for_project(str(project_id))
