# src/project_tms/validation.py

"""Input checks shared by the task and project stores."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .errors import ValidationError


def require_text(value: Any, field_name: str) -> str:
    """Return the stripped string or raise ValidationError if blank/missing."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"{value!r} is not a valid date") from None


def optional_date(value: Any, field_name: str) -> str | None:
    """Empty dates are allowed; anything else must be ISO-8601 parseable."""
    s = optional_text(value)
    if s is None:
        return None
    try:
        datetime.fromisoformat(s)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid date") from None
    return s


def check_date_range(start: str | None, end: str | None) -> None:
    if not start or not end:
        return
    s = parse_date(start).date()
    e = parse_date(end).date()
    if e < s:
        raise ValidationError("End date must be after start date")
