# src/project_tms/storage/fallback.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import PersistenceGateway
from ..errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class FallbackGateway:
    """
    Primary storage mirrored into a local cache.

    - read: primary; on success the cache is refreshed with the result.
      If the primary is unreachable, the cache answers instead.
    - write: primary, then mirrored into the cache. If the primary is
      unreachable, the write goes to the cache only.
    - any other primary failure (HTTP error status, bad JSON) propagates.

    Known limitation: writes that landed only in the cache are not replayed
    to the primary when it comes back; the next successful write of the same
    collection supersedes them.
    """

    def __init__(self, primary: PersistenceGateway, cache: PersistenceGateway) -> None:
        self._primary = primary
        self._cache = cache
        self.offline = False

    def _mirror(self, name: str, value: Any) -> None:
        if not self._cache.write_collection(name, value):
            logger.warning("Failed to mirror %s into local cache", name)

    def read_collection(self, name: str) -> Any:
        try:
            value = self._primary.read_collection(name)
        except StorageUnavailableError:
            self.offline = True
            logger.warning("Primary storage unreachable; reading %s from local cache", name)
            return self._cache.read_collection(name)

        self.offline = False
        self._mirror(name, value)
        return value

    def write_collection(self, name: str, value: Any) -> bool:
        try:
            ok = self._primary.write_collection(name, value)
        except StorageUnavailableError:
            self.offline = True
            logger.warning("Primary storage unreachable; saved %s to local cache only", name)
            return self._cache.write_collection(name, value)

        self.offline = False
        if ok:
            self._mirror(name, value)
        return ok

    def delete_collection(self, name: str) -> bool:
        try:
            ok = self._primary.delete_collection(name)
        except StorageUnavailableError:
            self.offline = True
            logger.warning("Primary storage unreachable; deleting %s from local cache only", name)
            return self._cache.delete_collection(name)

        self.offline = False
        if ok and not self._cache.delete_collection(name):
            logger.warning("Failed to delete %s from local cache", name)
        return ok

    def close(self) -> None:
        close = getattr(self._primary, "close", None)
        if callable(close):
            close()
