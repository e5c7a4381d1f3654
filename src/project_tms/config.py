# src/project_tms/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every component receives settings by injection; get_settings() is only
  read by the entrypoint.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TMS"

STORAGE_MODES = ("local", "files", "remote")

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = _env(name, default).strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    storage_mode: str
    data_dir: Path
    storage_dir: Path
    cache_db_path: Path
    api_url: str
    request_timeout_seconds: float

    # ---- Console / ticker ----
    ticker_enabled: bool
    tick_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "project-tms").strip() or "project-tms"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        storage_mode = _env_choice(_k("STORAGE_MODE"), STORAGE_MODES, "local")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/project-tms"))
        storage_dir = _env_path(_k("STORAGE_DIR"), data_dir / "storage")
        cache_db_path = _env_path(_k("CACHE_DB_PATH"), data_dir / "local_cache.sqlite3")
        api_url = _env(_k("API_URL"), "http://localhost:3000/api").strip().rstrip("/")
        request_timeout_seconds = _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 5.0)

        ticker_enabled = _env_bool(_k("TICKER_ENABLED"), True)
        tick_interval_seconds = _env_float(_k("TICK_INTERVAL_SECONDS"), 1.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            storage_mode=storage_mode,
            data_dir=data_dir,
            storage_dir=storage_dir,
            cache_db_path=cache_db_path,
            api_url=api_url,
            request_timeout_seconds=request_timeout_seconds,
            ticker_enabled=ticker_enabled,
            tick_interval_seconds=tick_interval_seconds,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
