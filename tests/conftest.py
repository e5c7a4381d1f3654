# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from project_tms.core.events import EventBus
from project_tms.core.state import AppState
from project_tms.projects.project_store import ProjectStore
from project_tms.tasks.board import BoardView
from project_tms.tasks.task_store import TaskStore

from .fakes import ManualClock, MemoryGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="project-tms-test",
        log_level="DEBUG",
        storage_mode="local",
        data_dir=tmp_path,
        storage_dir=tmp_path / "storage",
        cache_db_path=tmp_path / "local_cache.sqlite3",
        api_url="http://tms.test/api",
        request_timeout_seconds=1.0,
        ticker_enabled=False,
        tick_interval_seconds=0.01,
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture()
def task_store(gateway: MemoryGateway, bus: EventBus, clock: ManualClock) -> TaskStore:
    return TaskStore(gateway, bus, clock=clock)


@pytest.fixture()
def project_store(gateway: MemoryGateway, bus: EventBus, clock: ManualClock) -> ProjectStore:
    return ProjectStore(gateway, bus, clock=clock)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    clock: ManualClock,
    gateway: MemoryGateway,
    bus: EventBus,
    task_store: TaskStore,
    project_store: ProjectStore,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: the stores are real; only the clock and the storage backend are fakes.
    """
    return AppState(
        settings=settings,  # type: ignore[arg-type]
        clock=clock,
        gateway=gateway,
        bus=bus,
        task_store=task_store,
        project_store=project_store,
        board_view=BoardView(task_store, bus),
    )
