# src/project_tms/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable

from ..connectors.board_render import render_board, render_task
from ..core.state import AppState
from ..errors import TmsError, ValidationError
from ..storage.backup import export_to_file, import_from_file
from ..tasks import time_tracking
from ..tasks.analytics import summarize_project

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

# User-facing prefix per error category.
ERROR_PREFIXES: dict[str, str] = {
    "validation": "[INVALID]",
    "not_found": "[NOT FOUND]",
    "invalid_state": "[NOT ALLOWED]",
    "timer": "[TIMER]",
    "storage": "[STORAGE]",
}

# Short field names accepted in key=value arguments.
_FIELD_ALIASES: dict[str, str] = {
    "desc": "description",
    "due": "due_date",
    "start": "start_date",
    "end": "end_date",
}

_TASK_CREATE_FIELDS = frozenset({"description", "assignee", "due_date", "priority", "status"})
_PROJECT_CREATE_FIELDS = frozenset({"description", "start_date", "end_date", "status"})


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors are turned into replies prefixed by their category;
        anything else propagates to the connector.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as exc:
            return f"Cannot parse command: {exc}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except TmsError as exc:
            logger.debug("Command /%s failed: %s", name, exc)
            return f"{ERROR_PREFIXES.get(exc.category, '[ERROR]')} {exc}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _split_fields(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate positional words from key=value pairs."""
    words: list[str] = []
    fields: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key and key.replace("_", "").isalpha():
            key = key.lower()
            fields[_FIELD_ALIASES.get(key, key)] = value
        else:
            words.append(arg)
    return words, fields


def _check_fields(fields: dict[str, str], allowed: frozenset[str]) -> dict[str, str]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")
    return fields


def _require_project(state: AppState) -> str:
    if state.current_project_id is None:
        raise ValidationError("No project selected. Use /project new <name> or /use <project-id>.")
    return state.current_project_id


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    offline = getattr(state.gateway, "offline", False)
    active = state.task_store.active_task()
    lines = [
        "Status:",
        f"  Storage: {settings.storage_mode}{' (offline, using local cache)' if offline else ''}",
        f"  Project: {state.current_project_id or '-'}",
        f"  Tasks:   {state.task_store.count_tasks()}",
    ]
    if active is None:
        lines.append("  Timer:   not running")
    else:
        spent = time_tracking.elapsed(active.time_tracking, state.clock.now())
        lines.append(f"  Timer:   {active.id} {active.title} ({time_tracking.format_duration(spent)})")
    return "\n".join(lines)


def cmd_projects(state: AppState, args: list[str]) -> str:
    projects = state.project_store.list_projects()
    if not projects:
        return "No projects yet. Use /project new <name>."
    lines = ["Projects:"]
    for p in projects:
        marker = "*" if p.id == state.current_project_id else " "
        dates = ""
        if p.start_date or p.end_date:
            dates = f" [{(p.start_date or '?')[:10]} .. {(p.end_date or '?')[:10]}]"
        lines.append(f" {marker} {p.id}  {p.name} ({p.status}){dates}")
    return "\n".join(lines)


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project new <name> [desc=...] [start=YYYY-MM-DD] [end=YYYY-MM-DD]
    /project edit <id> name=... [desc=...] [status=...]
    /project rm <id>
    """
    usage = "Usage: /project new <name> [desc=..] [start=..] [end=..] | /project edit <id> key=value.. | /project rm <id>"
    if not args:
        return usage

    sub = args[0].lower()
    words, fields = _split_fields(args[1:])

    if sub == "new":
        project = state.project_store.create(
            name=" ".join(words),
            **_check_fields(fields, _PROJECT_CREATE_FIELDS),
        )
        state.select_project(project.id)
        return f"Project created: {project.id} {project.name} (now selected)"

    if sub == "edit":
        if not words:
            return usage
        project = state.project_store.update(words[0], **fields)
        return f"Project updated: {project.id} {project.name}"

    if sub in ("rm", "delete"):
        if not words:
            return usage
        project = state.project_store.get(words[0])
        before = len(state.task_store.list_tasks(project.id))
        state.project_store.delete(project.id)
        if state.current_project_id == project.id:
            remaining = state.project_store.list_projects()
            state.select_project(remaining[0].id if remaining else None)
        return f"Project deleted: {project.name} ({before} tasks removed)"

    return usage


def cmd_use(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /use <project-id>"
    project = state.project_store.get(args[0])
    state.select_project(project.id)
    return f"Current project: {project.name}"


def cmd_task(state: AppState, args: list[str]) -> str:
    """/task new <title> [priority=..] [assignee=..] [due=..] [desc=..] [status=..] | /task <id>"""
    usage = "Usage: /task new <title> [priority=high|medium|low] [assignee=..] [due=YYYY-MM-DD] [desc=..] | /task <id>"
    if not args:
        return usage

    if args[0].lower() == "new":
        words, fields = _split_fields(args[1:])
        task = state.task_store.create(
            project_id=_require_project(state),
            title=" ".join(words),
            **_check_fields(fields, _TASK_CREATE_FIELDS),
        )
        return f"Task created: {task.id} {task.title}"

    task = state.task_store.get(args[0])
    return render_task(task, state.clock.now())


def cmd_edit(state: AppState, args: list[str]) -> str:
    words, fields = _split_fields(args)
    if not words or not fields:
        return "Usage: /edit <task-id> key=value [key=value ...]"
    task = state.task_store.update(words[0], **fields)
    return f"Task updated: {task.id} {task.title}"


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /move <task-id> <todo|in-progress|review|done>"
    task = state.task_store.transition(args[0], args[1])
    return f"Task {task.id} is now {task.status}."


def cmd_timer(state: AppState, args: list[str]) -> str:
    """/timer -> show the running timer; /timer <task-id> -> start/stop it"""
    if not args:
        live = state.live_timer
        active = state.task_store.active_task()
        if active is None:
            return "No timer running."
        if live is not None and live.task_id == active.id:
            spent = live.elapsed_ms
        else:
            spent = time_tracking.elapsed(active.time_tracking, state.clock.now())
        return f"Timer running on {active.id} {active.title}: {time_tracking.format_duration(spent)}"

    task = state.task_store.toggle_timer(args[0])
    tt = task.time_tracking
    if tt.is_active:
        return f"Timer started on {task.id} {task.title}."
    return f"Timer stopped on {task.id}. Total: {time_tracking.format_duration(tt.total_time)}"


def cmd_note(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /note <task-id> <text>"
    task = state.task_store.add_note(args[0], " ".join(args[1:]))
    return f"Note added to {task.id} ({len(task.notes)} notes)."


def cmd_board(state: AppState, args: list[str]) -> str:
    if args:
        project = state.project_store.get(args[0])
        state.select_project(project.id)
    _require_project(state)
    return render_board(state.board_view.board, state.clock.now())


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task-id>"
    if state.task_store.delete(args[0]):
        return f"Task {args[0]} deleted."
    return f"Task {args[0]} not found."


def cmd_stats(state: AppState, args: list[str]) -> str:
    project_id = args[0] if args else _require_project(state)
    project = state.project_store.get(project_id)
    summary = summarize_project(state.task_store.list_tasks(project.id), state.clock.now())
    c = summary.counts
    return (
        f"Project {project.name}:\n"
        f"  Tasks:      {summary.total} (todo {c['todo']}, in progress {c['inProgress']}, "
        f"review {c['review']}, done {c['done']})\n"
        f"  Completion: {summary.completion_rate:.0%}\n"
        f"  Tracked:    {time_tracking.format_duration(summary.tracked_time)}"
        f" (avg {time_tracking.format_duration(summary.average_time_per_task)} per task)"
    )


def cmd_export(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /export <file.json>"
    path = export_to_file(state.gateway, state.clock, args[0])
    return f"Exported to {path}"


def cmd_import(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /import <file.json>"
    stats = import_from_file(state.gateway, state.clock, args[0])
    state.project_store.reload()
    state.task_store.reload()

    projects = state.project_store.list_projects()
    known = {p.id for p in projects}
    if state.current_project_id not in known:
        state.select_project(projects[0].id if projects else None)
    else:
        state.board_view.refresh()
    return f"Imported {stats['projectCount']} projects and {stats['taskCount']} tasks."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage mode, current project and running timer.")
registry.register("projects", cmd_projects, help_text="List projects.")
registry.register("project", cmd_project, help_text="Manage projects: /project new|edit|rm.")
registry.register("use", cmd_use, help_text="Select the current project: /use <project-id>.")
registry.register("task", cmd_task, help_text="Create a task (/task new <title> ...) or show one (/task <id>).")
registry.register("edit", cmd_edit, help_text="Edit task fields: /edit <id> key=value ...")
registry.register("move", cmd_move, help_text="Change task status: /move <id> <status>.", aliases=["mv"])
registry.register("timer", cmd_timer, help_text="Start/stop a task timer: /timer <id>.", aliases=["t"])
registry.register("note", cmd_note, help_text="Add a note: /note <id> <text>.")
registry.register("board", cmd_board, help_text="Show the board of the current project.", aliases=["b"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("stats", cmd_stats, help_text="Project summary: /stats [project-id].")
registry.register("export", cmd_export, help_text="Export all data: /export <file.json>.")
registry.register("import", cmd_import, help_text="Import a backup: /import <file.json>.")
