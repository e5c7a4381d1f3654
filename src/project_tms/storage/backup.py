# src/project_tms/storage/backup.py

from __future__ import annotations

"""
Whole-database backup as a single JSON document:

    {"projects": [...], "tasks": [...], "settings": {...},
     "exportDate": "...", "version": "2.0"}

After import_data() the stores must reload() to pick up the new collections.
"""

import json
import logging
from pathlib import Path
from typing import Any

from ..core.clock import SystemClock
from ..core.ports import Clock, PersistenceGateway
from ..errors import PersistenceError, ValidationError
from ..tasks.task_models import format_ts
from .collections import LAST_SYNC, PROJECTS, SETTINGS, TASKS

logger = logging.getLogger(__name__)

BACKUP_VERSION = "2.0"


def export_data(gateway: PersistenceGateway, clock: Clock) -> dict[str, Any]:
    return {
        "projects": gateway.read_collection(PROJECTS),
        "tasks": gateway.read_collection(TASKS),
        "settings": gateway.read_collection(SETTINGS),
        "exportDate": format_ts(clock.now()),
        "version": BACKUP_VERSION,
    }


def _write(gateway: PersistenceGateway, name: str, value: Any) -> None:
    if not gateway.write_collection(name, value):
        raise PersistenceError(f"Failed to import {name}")


def import_data(gateway: PersistenceGateway, data: Any, *, clock: Clock | None = None) -> dict[str, int]:
    """
    Replace projects/tasks (and settings if present). Returns import stats.

    If one of the writes fails, the collections already written are put back
    to their previous contents before the PersistenceError is re-raised.
    """
    clock = clock or SystemClock()
    if not isinstance(data, dict):
        raise ValidationError("Invalid data format")
    if not isinstance(data.get("projects"), list):
        raise ValidationError("Invalid projects data")
    if not isinstance(data.get("tasks"), list):
        raise ValidationError("Invalid tasks data")
    settings = data.get("settings")
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("Invalid settings data")

    planned: list[tuple[str, Any]] = [(PROJECTS, data["projects"]), (TASKS, data["tasks"])]
    if settings is not None:
        planned.append((SETTINGS, settings))

    previous = {name: gateway.read_collection(name) for name, _ in planned}
    written: list[str] = []
    try:
        for name, value in planned:
            _write(gateway, name, value)
            written.append(name)
    except PersistenceError:
        logger.error("Import failed; restoring %s", written)
        _rollback(gateway, previous, written)
        raise
    _write(gateway, LAST_SYNC, {"lastSync": format_ts(clock.now())})

    stats = {"projectCount": len(data["projects"]), "taskCount": len(data["tasks"])}
    logger.info("Imported backup projects=%d tasks=%d", stats["projectCount"], stats["taskCount"])
    return stats


def _rollback(gateway: PersistenceGateway, previous: dict[str, Any], written: list[str]) -> None:
    for name in reversed(written):
        try:
            _write(gateway, name, previous[name])
        except PersistenceError:
            logger.exception("Could not restore %s after a failed import", name)


def export_to_file(gateway: PersistenceGateway, clock: Clock, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(export_data(gateway, clock), ensure_ascii=False, indent=2), "utf-8")
    return path


def import_from_file(gateway: PersistenceGateway, clock: Clock, path: str | Path) -> dict[str, int]:
    try:
        data = json.loads(Path(path).read_text("utf-8"))
    except FileNotFoundError:
        raise ValidationError(f"Backup file not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Backup file is not valid JSON: {exc}") from exc
    return import_data(gateway, data, clock=clock)
