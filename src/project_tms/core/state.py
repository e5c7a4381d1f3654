# src/project_tms/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..config import Settings
from ..projects.project_store import ProjectStore
from ..tasks.board import BoardView
from ..tasks.task_store import TaskStore
from .events import EventBus
from .ports import Clock, PersistenceGateway


@dataclass
class LiveTimer:
    """Last value reported by the timer ticker."""

    task_id: str
    title: str
    elapsed_ms: int


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Settings

    clock: Clock
    gateway: PersistenceGateway
    bus: EventBus
    task_store: TaskStore
    project_store: ProjectStore
    board_view: BoardView

    current_project_id: str | None = None
    live_timer: LiveTimer | None = None

    # Serializes console commands with background readers (ticker thread).
    lock: threading.RLock = field(default_factory=threading.RLock)

    def select_project(self, project_id: str | None) -> None:
        self.current_project_id = project_id
        self.board_view.select_project(project_id)
