# src/project_tms/errors.py

"""
Error kinds raised by the stores and gateways.

Every error carries a `category` so front-ends can pick the right kind of
feedback (validation vs. not-found vs. storage failure) without matching on
message text.
"""

from __future__ import annotations


class TmsError(Exception):
    category = "error"


class ValidationError(TmsError):
    """Bad input: blank title/note, unknown status or priority, bad dates."""

    category = "validation"


class NotFoundError(TmsError):
    category = "not_found"


class InvalidStateError(TmsError):
    """Operation not allowed in the entity's current state."""

    category = "invalid_state"


class AlreadyActiveError(InvalidStateError):
    category = "timer"


class NotActiveError(InvalidStateError):
    category = "timer"


class PersistenceError(TmsError):
    """Storage read/write failed. The in-memory state was not changed."""

    category = "storage"


class StorageUnavailableError(PersistenceError):
    """The storage backend could not be reached (connection refused, timeout)."""
