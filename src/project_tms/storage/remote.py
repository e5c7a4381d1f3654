# src/project_tms/storage/remote.py

from __future__ import annotations

"""
HTTP client for the JSON file server.

Endpoints (relative to the API base URL):
- GET    /files              -> {"files": [...]}
- GET    /files/<name>.json  -> collection ([] / {} when the file is missing)
- POST   /files/<name>.json  -> {"success": true, ...}
- DELETE /files/<name>.json  -> {"success": true, ...}

Connection problems (refused, DNS, timeouts) raise StorageUnavailableError so
that FallbackGateway can switch to the local cache; HTTP error statuses raise
plain PersistenceError.
"""

import logging
from typing import Any

import httpx

from ..errors import PersistenceError, StorageUnavailableError
from .collections import check_name

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class RemoteGateway:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        logger.info("RemoteGateway base_url=%s timeout=%.1fs", self._base_url, timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            # ConnectError, TimeoutException, ... : server not reachable.
            logger.warning("Storage server unreachable %s %s: %s", method, path, exc)
            raise StorageUnavailableError(f"Storage server unreachable: {exc}") from exc

        if response.is_error:
            logger.error("Storage server %s %s -> %s", method, path, response.status_code)
            raise PersistenceError(f"Storage server returned {response.status_code} for {path}")
        return response

    def is_available(self) -> bool:
        try:
            self._request("GET", "/files")
        except PersistenceError:
            return False
        return True

    def read_collection(self, name: str) -> Any:
        response = self._request("GET", f"/files/{check_name(name)}.json")
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(f"Storage server sent invalid JSON for {name}") from exc

    def write_collection(self, name: str, value: Any) -> bool:
        self._request("POST", f"/files/{check_name(name)}.json", json=value)
        return True

    def delete_collection(self, name: str) -> bool:
        self._request("DELETE", f"/files/{check_name(name)}.json")
        return True
