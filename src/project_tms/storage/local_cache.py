# src/project_tms/storage/local_cache.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from .collections import check_name, empty_collection

logger = logging.getLogger(__name__)

KEY_PREFIX = "tms_"


class LocalCacheGateway:
    """
    SQLite key/value storage: the "local storage" mode, and the offline cache
    behind the remote gateway.

    Each collection is one row: key "tms_<name>", value = JSON text.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "local_cache.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("LocalCacheGateway ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _key(name: str) -> str:
        return KEY_PREFIX + check_name(name).lower()

    # ---- gateway API ----

    def read_collection(self, name: str) -> Any:
        key = self._key(name)
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.exception("Local cache read failed key=%s", key)
            raise PersistenceError(f"Failed to read {name} from local storage") from exc

        if row is None:
            return empty_collection(name)
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Corrupt JSON in local cache key=%s; using empty %s", key, name)
            return empty_collection(name)

    def write_collection(self, name: str, value: Any) -> bool:
        key = self._key(name)
        try:
            data = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode %s for local cache", name)
            return False

        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO storage(key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, data, time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("Local cache write failed key=%s", key)
            return False
        return True

    def delete_collection(self, name: str) -> bool:
        key = self._key(name)
        try:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM storage WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("Local cache delete failed key=%s", key)
            return False
        return True

    def list_collections(self) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT key FROM storage ORDER BY key").fetchall()
        finally:
            conn.close()
        return [str(r["key"])[len(KEY_PREFIX):] for r in rows]
