# src/project_tms/projects/project_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..tasks.task_models import format_ts, parse_ts

DEFAULT_PROJECT_STATUS = "active"

_PROJECT_KEYS = {
    "id",
    "name",
    "description",
    "startDate",
    "endDate",
    "status",
    "createdAt",
    "updatedAt",
}


@dataclass(slots=True)
class Project:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    status: str = DEFAULT_PROJECT_STATUS
    extra: dict[str, Any] = field(default_factory=dict)


def project_from_wire(raw: dict[str, Any]) -> Project | None:
    project_id = raw.get("id")
    if project_id is None or str(project_id).strip() == "":
        return None
    created_at = parse_ts(raw.get("createdAt")) or datetime.fromtimestamp(0, tz=UTC)
    return Project(
        id=str(project_id),
        name=str(raw.get("name") or ""),
        created_at=created_at,
        updated_at=parse_ts(raw.get("updatedAt")) or created_at,
        description=raw.get("description") or None,
        start_date=raw.get("startDate") or None,
        end_date=raw.get("endDate") or None,
        status=str(raw.get("status") or DEFAULT_PROJECT_STATUS),
        extra={k: v for k, v in raw.items() if k not in _PROJECT_KEYS},
    )


def project_to_wire(project: Project) -> dict[str, Any]:
    out: dict[str, Any] = dict(project.extra)
    out.update(
        {
            "id": project.id,
            "name": project.name,
            "description": project.description,
            "startDate": project.start_date,
            "endDate": project.end_date,
            "status": project.status,
            "createdAt": format_ts(project.created_at),
            "updatedAt": format_ts(project.updated_at),
        }
    )
    return out
