# src/project_tms/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires gateway, event bus and stores into AppState,
- releases them again on shutdown (flushing a running timer first).
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.clock import SystemClock
from ..core.events import EventBus
from ..core.ports import Clock
from ..core.state import AppState
from ..projects.project_store import ProjectStore
from ..storage.factory import build_gateway
from ..tasks.board import BoardView
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.storage_mode == "files":
        settings.storage_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    clock = clock or SystemClock()

    _ensure_local_dirs(settings)

    gateway = build_gateway(settings)
    bus = EventBus()
    # Subscribes to project:deleted for the cascade.
    task_store = TaskStore(gateway, bus, clock=clock)
    project_store = ProjectStore(gateway, bus, clock=clock)

    state = AppState(
        settings=settings,
        clock=clock,
        gateway=gateway,
        bus=bus,
        task_store=task_store,
        project_store=project_store,
        board_view=BoardView(task_store, bus),
    )

    projects = project_store.list_projects()
    if projects:
        state.select_project(projects[0].id)
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        flushed = state.task_store.flush_active_timer_on_unload()
        if flushed is not None:
            logger.info("Saved running timer of task %s before exit.", flushed.id)
    except Exception:
        logger.exception("Failed to flush the active timer on shutdown.")

    try:
        state.board_view.close()
        state.task_store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)

    try:
        close = getattr(state.gateway, "close", None)
        if callable(close):
            close()
    except Exception:
        logger.debug("Gateway close failed.", exc_info=True)
