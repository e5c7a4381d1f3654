# tests/test_commands.py

from __future__ import annotations

from project_tms.cli.commands import CommandRegistry, registry
from project_tms.errors import NotFoundError, PersistenceError


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("a", handler, "a", aliases=["x"])

    assert reg.handle(state, '/a one "two words"') == "ok"
    assert reg.handle(state, "/X") == "ok"
    assert called == [["one", "two words"], []]
    assert "/a - a" in reg.build_help()


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_domain_errors_get_category_prefix(state) -> None:
    reg = CommandRegistry()

    def missing(state, args):
        raise NotFoundError("Task 1 not found")

    def storage(state, args):
        raise PersistenceError("disk full")

    reg.register("missing", missing, "")
    reg.register("storage", storage, "")

    assert reg.handle(state, "/missing") == "[NOT FOUND] Task 1 not found"
    assert reg.handle(state, "/storage") == "[STORAGE] disk full"


def test_project_and_task_workflow(state, clock) -> None:
    reply = registry.handle(state, "/project new Website start=2024-01-01 end=2024-03-01")
    assert reply is not None and reply.startswith("Project created")
    project_id = state.current_project_id
    assert project_id is not None

    reply = registry.handle(state, '/task new "Write report" priority=high due=2024-02-01')
    assert reply is not None and reply.startswith("Task created")
    task = state.task_store.list_tasks(project_id)[0]
    assert task.title == "Write report"
    assert task.priority == "high"

    assert "[NOT ALLOWED]" in (registry.handle(state, f"/timer {task.id}") or "")

    registry.handle(state, f"/move {task.id} in-progress")
    assert "Timer started" in (registry.handle(state, f"/timer {task.id}") or "")
    clock.advance(minutes=90)
    assert "1h 30m" in (registry.handle(state, "/timer") or "")
    assert "Total: 1h 30m" in (registry.handle(state, f"/timer {task.id}") or "")

    registry.handle(state, f"/note {task.id} first pass done")
    assert len(state.task_store.get(task.id).notes) == 1

    board = registry.handle(state, "/board") or ""
    assert "In Progress (1)" in board
    assert "Write report" in board

    detail = registry.handle(state, f"/task {task.id}") or ""
    assert "first pass done" in detail

    stats = registry.handle(state, "/stats") or ""
    assert "Tracked:    1h 30m" in stats


def test_edit_validates_fields(state) -> None:
    registry.handle(state, "/project new P")
    registry.handle(state, "/task new t")
    task = state.task_store.list_tasks()[0]

    assert "[INVALID]" in (registry.handle(state, f"/edit {task.id} priority=urgent") or "")
    assert "[INVALID]" in (registry.handle(state, "/task new x color=red") or "")

    registry.handle(state, f"/edit {task.id} assignee=sam desc='needs review'")
    updated = state.task_store.get(task.id)
    assert updated.assignee == "sam"
    assert updated.description == "needs review"


def test_task_requires_selected_project(state) -> None:
    assert "No project selected" in (registry.handle(state, "/task new orphan") or "")


def test_project_rm_cascades_and_reselects(state) -> None:
    registry.handle(state, "/project new First")
    first = state.current_project_id
    registry.handle(state, "/project new Second")
    second = state.current_project_id
    registry.handle(state, "/task new a")
    registry.handle(state, "/task new b")

    reply = registry.handle(state, f"/project rm {second}") or ""

    assert "2 tasks removed" in reply
    assert state.task_store.list_tasks() == []
    assert state.current_project_id == first


def test_export_import_commands(state, tmp_path) -> None:
    registry.handle(state, "/project new P")
    registry.handle(state, "/task new t")
    path = tmp_path / "backup.json"

    assert "Exported" in (registry.handle(state, f"/export {path}") or "")

    registry.handle(state, f"/rm {state.task_store.list_tasks()[0].id}")
    assert state.task_store.list_tasks() == []

    reply = registry.handle(state, f"/import {path}") or ""
    assert reply == "Imported 1 projects and 1 tasks."
    assert [t.title for t in state.task_store.list_tasks()] == ["t"]
    assert state.board_view.board.counts["total"] == 1


def test_project_rm_reports_failed_cascade(state, gateway) -> None:
    registry.handle(state, "/project new Only")
    project_id = state.current_project_id
    registry.handle(state, "/task new a")
    gateway.fail_collections = {"tasks"}

    reply = registry.handle(state, f"/project rm {project_id}") or ""

    assert reply.startswith("[STORAGE]")
    assert "tasks removed" not in reply
    assert state.project_store.get(project_id).name == "Only"
    assert len(state.task_store.list_tasks(project_id)) == 1
