# src/project_tms/storage/collections.py

from __future__ import annotations

import re

from ..errors import ValidationError

TASKS = "tasks"
PROJECTS = "projects"
SETTINGS = "settings"
LAST_SYNC = "last_sync"

# Collections stored as JSON arrays; everything else is a JSON object.
LIST_COLLECTIONS = frozenset({TASKS, PROJECTS})

_NAME_RE = re.compile(r"[A-Za-z0-9_\-]+")


def empty_collection(name: str) -> list | dict:
    return [] if name in LIST_COLLECTIONS else {}


def check_name(name: str) -> str:
    """Collection names become file names / keys; keep them to a safe charset."""
    if not name or not _NAME_RE.fullmatch(name):
        raise ValidationError(f"Invalid collection name: {name!r}")
    return name
