# src/project_tms/projects/project_store.py

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any

from ..core import events
from ..core.clock import SystemClock
from ..core.ids import IdGenerator
from ..core.ports import Clock, EventPublisher, PersistenceGateway
from ..errors import NotFoundError, PersistenceError, TmsError, ValidationError
from ..validation import check_date_range, optional_date, optional_text, require_text
from .project_models import DEFAULT_PROJECT_STATUS, Project, project_from_wire, project_to_wire

logger = logging.getLogger(__name__)

PROJECTS_COLLECTION = "projects"

_EDITABLE_FIELDS = frozenset({"name", "description", "start_date", "end_date", "status"})


class ProjectStore:
    """
    Project CRUD over the "projects" collection.

    Deleting a project publishes project:deleted; TaskStore listens for it
    and removes the project's tasks. A failed cascade puts the project back.
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
        self._projects: dict[str, Project] = {}
        self.reload()
        logger.info("ProjectStore ready total=%s", len(self._projects))

    def reload(self) -> None:
        raw = self._gateway.read_collection(PROJECTS_COLLECTION)
        if not isinstance(raw, list):
            logger.warning("Stored projects collection is not a list; starting empty")
            raw = []
        loaded: dict[str, Project] = {}
        for item in raw:
            if not isinstance(item, dict):
                continue
            project = project_from_wire(item)
            if project is None:
                continue
            loaded[project.id] = project
            self._ids.observe(project.id)
        with self._lock:
            self._projects = loaded

    def _commit(self, new_projects: dict[str, Project]) -> None:
        payload = [project_to_wire(p) for p in new_projects.values()]
        try:
            ok = self._gateway.write_collection(PROJECTS_COLLECTION, payload)
        except PersistenceError:
            logger.exception("Failed to persist projects")
            raise
        except Exception as exc:
            logger.exception("Failed to persist projects")
            raise PersistenceError(f"Failed to save projects: {exc}") from exc
        if not ok:
            raise PersistenceError("Failed to save projects")
        self._projects = new_projects

    def _require(self, project_id: str) -> Project:
        project = self._projects.get(str(project_id))
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    # ---- queries ----

    def get(self, project_id: str) -> Project:
        with self._lock:
            return self._require(project_id)

    def list_projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects.values())

    # ---- mutations ----

    def create(
        self,
        *,
        name: str,
        description: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        status: str = DEFAULT_PROJECT_STATUS,
    ) -> Project:
        clean_name = require_text(name, "name")
        start = optional_date(start_date, "start_date")
        end = optional_date(end_date, "end_date")
        check_date_range(start, end)

        with self._lock:
            now = self._clock.now()
            project = Project(
                id=self._ids.next_id(now),
                name=clean_name,
                created_at=now,
                updated_at=now,
                description=optional_text(description),
                start_date=start,
                end_date=end,
                status=optional_text(status) or DEFAULT_PROJECT_STATUS,
            )
            new_projects = dict(self._projects)
            new_projects[project.id] = project
            self._commit(new_projects)

        self._bus.publish(events.PROJECT_CREATED, {"projectId": project.id, "project": project})
        return project

    def update(self, project_id: str, **patch: Any) -> Project:
        unknown = set(patch) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        with self._lock:
            project = self._require(project_id)
            changes: dict[str, Any] = {}
            if "name" in patch:
                changes["name"] = require_text(patch["name"], "name")
            if "description" in patch:
                changes["description"] = optional_text(patch["description"])
            if "start_date" in patch:
                changes["start_date"] = optional_date(patch["start_date"], "start_date")
            if "end_date" in patch:
                changes["end_date"] = optional_date(patch["end_date"], "end_date")
            if "status" in patch:
                changes["status"] = optional_text(patch["status"]) or DEFAULT_PROJECT_STATUS

            check_date_range(
                changes.get("start_date", project.start_date),
                changes.get("end_date", project.end_date),
            )

            updated = replace(project, **changes, updated_at=self._clock.now())
            new_projects = dict(self._projects)
            new_projects[project.id] = updated
            self._commit(new_projects)

        self._bus.publish(events.PROJECT_UPDATED, {"projectId": updated.id, "project": updated})
        return updated

    def delete(self, project_id: str) -> bool:
        """
        Remove a project; the project:deleted handlers remove its tasks.

        If the cascade fails the project is written back and the error is
        re-raised, so no task is left pointing at a missing project.
        """
        with self._lock:
            project = self._projects.get(str(project_id))
            if project is None:
                return False
            new_projects = dict(self._projects)
            del new_projects[project.id]
            self._commit(new_projects)

        logger.info("Project deleted id=%s name=%s", project.id, project.name)
        try:
            self._bus.publish(events.PROJECT_DELETED, {"projectId": project.id})
        except TmsError:
            logger.error("Task cascade failed; restoring project id=%s", project.id)
            self._restore(project)
            raise
        return True

    def _restore(self, project: Project) -> None:
        with self._lock:
            new_projects = dict(self._projects)
            new_projects[project.id] = project
            try:
                self._commit(new_projects)
            except PersistenceError:
                logger.exception("Could not restore project id=%s", project.id)
