# src/project_tms/connectors/board_render.py

"""Plain-text rendering of a Board: four side-by-side columns."""

from __future__ import annotations

import shutil
import textwrap
from datetime import datetime

from ..tasks import time_tracking
from ..tasks.board import COLUMN_TITLES, COLUMNS, Board
from ..tasks.task_models import Task, TaskStatus

MIN_COL_WIDTH = 18
SEP = " | "

_PRIORITY_MARK = {"high": "!!", "medium": "!", "low": "."}


def _task_lines(task: Task, width: int, now: datetime) -> list[str]:
    mark = _PRIORITY_MARK.get(str(task.priority), "?")
    head = f"{task.id} {mark}"
    if task.time_tracking.is_active:
        head += " [REC]"
    lines = [head[:width]]
    lines.extend(textwrap.wrap(task.title, width=width) or ["<untitled>"])

    details: list[str] = []
    spent = time_tracking.elapsed(task.time_tracking, now)
    if spent:
        details.append(time_tracking.format_duration(spent))
    if task.due_date:
        details.append(f"due {task.due_date[:10]}")
    if task.assignee:
        details.append(f"@{task.assignee}")
    if task.notes:
        details.append(f"{len(task.notes)} notes")
    if details:
        lines.extend(textwrap.wrap(" ".join(details), width=width))
    lines.append("")
    return lines


def _column_width(term_width: int) -> int:
    usable = term_width - len(SEP) * (len(COLUMNS) - 1)
    return max(MIN_COL_WIDTH, usable // len(COLUMNS))


def render_board(board: Board, now: datetime, *, term_width: int | None = None) -> str:
    if term_width is None:
        term_width = shutil.get_terminal_size((120, 30)).columns
    width = _column_width(term_width)

    cells: list[list[str]] = []
    for status in COLUMNS:
        tasks = board.column(status)
        lines: list[str] = []
        for task in tasks:
            lines.extend(_task_lines(task, width, now))
        if not lines:
            lines = ["(empty)"]
        cells.append(lines)

    headers = [f"{COLUMN_TITLES[s]} ({len(board.column(s))})" for s in COLUMNS]
    out = [SEP.join(h[:width].ljust(width) for h in headers).rstrip()]
    out.append(SEP.join("-" * width for _ in COLUMNS))
    height = max(len(c) for c in cells)
    for row in range(height):
        parts = [(c[row] if row < len(c) else "").ljust(width) for c in cells]
        out.append(SEP.join(parts).rstrip())

    total = board.counts.get("total", 0)
    done = board.counts.get("done", 0)
    out.append(f"{total} tasks, {done} done")
    return "\n".join(out)


def render_task(task: Task, now: datetime) -> str:
    known = TaskStatus.parse(str(task.status))
    status_label = COLUMN_TITLES[known] if known is not None else str(task.status)
    lines = [
        f"Task {task.id}: {task.title}",
        f"  Project:  {task.project_id}",
        f"  Status:   {status_label}",
        f"  Priority: {task.priority}",
    ]
    if task.assignee:
        lines.append(f"  Assignee: {task.assignee}")
    if task.due_date:
        lines.append(f"  Due:      {task.due_date}")
    if task.description:
        lines.append(f"  {task.description}")

    tt = task.time_tracking
    timer = "running" if tt.is_active else "stopped"
    lines.append(f"  Time:     {time_tracking.format_duration(time_tracking.elapsed(tt, now))} ({timer})")

    if task.notes:
        lines.append("  Notes:")
        for note in task.notes:
            lines.append(f"    [{note.created_at:%Y-%m-%d %H:%M}] {note.text}")
    return "\n".join(lines)
