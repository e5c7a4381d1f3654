# src/project_tms/storage/json_files.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from .collections import check_name, empty_collection

logger = logging.getLogger(__name__)


class JsonFileGateway:
    """
    One pretty-printed JSON file per collection (<storage_dir>/<name>.json),
    the same layout the file server keeps on disk.

    Writes go to a temp file first and are moved into place with os.replace,
    so a crash mid-write never leaves a truncated collection behind.
    """

    def __init__(self, storage_dir: str | Path) -> None:
        self._dir = Path(storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileGateway ready dir=%s", self._dir)

    def _path(self, name: str) -> Path:
        return self._dir / f"{check_name(name)}.json"

    def read_collection(self, name: str) -> Any:
        path = self._path(name)
        if not path.exists():
            return empty_collection(name)
        try:
            return json.loads(path.read_text("utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Failed to read %s", path)
            raise PersistenceError(f"Failed to read file: {path.name}") from exc

    def write_collection(self, name: str, value: Any) -> bool:
        path = self._path(name)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(value, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to write %s", path)
            return False
        logger.debug("Saved %s", path)
        return True

    def delete_collection(self, name: str) -> bool:
        path = self._path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to delete %s", path)
            return False
        return True

    def list_collections(self) -> list[str]:
        return sorted(p.stem for p in self._dir.glob("*.json"))
