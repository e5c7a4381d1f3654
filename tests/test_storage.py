# tests/test_storage.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

from project_tms.errors import PersistenceError, StorageUnavailableError, ValidationError
from project_tms.storage.fallback import FallbackGateway
from project_tms.storage.factory import build_gateway
from project_tms.storage.json_files import JsonFileGateway
from project_tms.storage.local_cache import LocalCacheGateway
from project_tms.storage.remote import RemoteGateway

from .fakes import FlakyGateway, MemoryGateway

# ---- local cache (SQLite) ----


def test_local_cache_defaults_and_round_trip(tmp_path: Path) -> None:
    cache = LocalCacheGateway(tmp_path / "cache.sqlite3")

    assert cache.read_collection("tasks") == []
    assert cache.read_collection("projects") == []
    assert cache.read_collection("settings") == {}

    tasks = [{"id": "1", "title": "ü unicode", "timeTracking": {"isActive": False, "totalTime": 5}}]
    assert cache.write_collection("tasks", tasks) is True
    assert cache.read_collection("tasks") == tasks

    # Survives a new instance (new connections).
    assert LocalCacheGateway(tmp_path / "cache.sqlite3").read_collection("tasks") == tasks
    assert cache.list_collections() == ["tasks"]

    assert cache.delete_collection("tasks") is True
    assert cache.read_collection("tasks") == []


def test_local_cache_rejects_unserializable_value(tmp_path: Path) -> None:
    cache = LocalCacheGateway(tmp_path / "cache.sqlite3")
    assert cache.write_collection("tasks", [object()]) is False
    assert cache.read_collection("tasks") == []


def test_collection_names_are_checked(tmp_path: Path) -> None:
    cache = LocalCacheGateway(tmp_path / "cache.sqlite3")
    with pytest.raises(ValidationError):
        cache.read_collection("../etc/passwd")


# ---- JSON files ----


def test_json_files_round_trip(tmp_path: Path) -> None:
    gw = JsonFileGateway(tmp_path / "data")

    assert gw.read_collection("projects") == []
    assert gw.write_collection("projects", [{"id": "1", "name": "P"}]) is True

    path = tmp_path / "data" / "projects.json"
    assert json.loads(path.read_text("utf-8")) == [{"id": "1", "name": "P"}]
    assert not (tmp_path / "data" / "projects.tmp").exists()
    assert gw.list_collections() == ["projects"]

    assert gw.delete_collection("projects") is True
    assert not path.exists()
    assert gw.delete_collection("projects") is True


def test_json_files_corrupt_file_raises(tmp_path: Path) -> None:
    gw = JsonFileGateway(tmp_path)
    (tmp_path / "tasks.json").write_text("{not json", "utf-8")
    with pytest.raises(PersistenceError):
        gw.read_collection("tasks")


# ---- remote (httpx) ----


class FakeFileServer:
    """Minimal in-memory version of the /files API for httpx.MockTransport."""

    def __init__(self) -> None:
        self.files: dict[str, object] = {}
        self.requests: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        path = request.url.path
        if path == "/api/files" and request.method == "GET":
            return httpx.Response(200, json={"files": sorted(self.files)})

        prefix = "/api/files/"
        if not path.startswith(prefix):
            return httpx.Response(404, json={"error": "not found"})
        name = path[len(prefix):]

        if request.method == "GET":
            default: object = [] if name in ("tasks.json", "projects.json") else {}
            return httpx.Response(200, json=self.files.get(name, default))
        if request.method == "POST":
            self.files[name] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})
        if request.method == "DELETE":
            self.files.pop(name, None)
            return httpx.Response(200, json={"success": True})
        return httpx.Response(405)


def _remote(handler) -> RemoteGateway:
    client = httpx.Client(base_url="http://tms.test/api", transport=httpx.MockTransport(handler))
    return RemoteGateway("http://tms.test/api", client=client)


def test_remote_gateway_talks_to_file_api() -> None:
    server = FakeFileServer()
    gw = _remote(server)

    assert gw.is_available() is True
    assert gw.read_collection("tasks") == []
    assert gw.write_collection("tasks", [{"id": "1"}]) is True
    assert server.files["tasks.json"] == [{"id": "1"}]
    assert gw.read_collection("tasks") == [{"id": "1"}]
    assert gw.delete_collection("tasks") is True

    assert ("POST", "/api/files/tasks.json") in server.requests


def test_remote_gateway_maps_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Failed to write file"})

    with pytest.raises(StorageUnavailableError):
        _remote(refuse).read_collection("tasks")
    assert _remote(refuse).is_available() is False

    with pytest.raises(PersistenceError) as exc_info:
        _remote(broken).write_collection("tasks", [])
    assert not isinstance(exc_info.value, StorageUnavailableError)


# ---- fallback ----


def test_fallback_mirrors_successful_calls_into_cache() -> None:
    primary = FlakyGateway({"tasks": [{"id": "1"}]})
    cache = MemoryGateway()
    gw = FallbackGateway(primary, cache)

    assert gw.read_collection("tasks") == [{"id": "1"}]
    assert cache.data["tasks"] == [{"id": "1"}]

    assert gw.write_collection("tasks", [{"id": "2"}]) is True
    assert primary.data["tasks"] == [{"id": "2"}]
    assert cache.data["tasks"] == [{"id": "2"}]
    assert gw.offline is False


def test_fallback_uses_cache_when_primary_is_unreachable() -> None:
    primary = FlakyGateway({"tasks": [{"id": "1"}]})
    cache = MemoryGateway()
    gw = FallbackGateway(primary, cache)
    gw.read_collection("tasks")

    primary.down = True
    assert gw.read_collection("tasks") == [{"id": "1"}]
    assert gw.offline is True

    assert gw.write_collection("tasks", [{"id": "3"}]) is True
    assert cache.data["tasks"] == [{"id": "3"}]
    assert primary.data["tasks"] == [{"id": "1"}]

    primary.down = False
    assert gw.read_collection("tasks") == [{"id": "1"}]
    assert gw.offline is False


def test_fallback_propagates_non_connection_errors() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    gw = FallbackGateway(_remote(broken), MemoryGateway())
    with pytest.raises(PersistenceError):
        gw.read_collection("tasks")


# ---- factory ----


def test_build_gateway_modes(tmp_path: Path) -> None:
    def settings(mode: str) -> SimpleNamespace:
        return SimpleNamespace(
            storage_mode=mode,
            storage_dir=tmp_path / "storage",
            cache_db_path=tmp_path / "cache.sqlite3",
            api_url="http://tms.test/api",
            request_timeout_seconds=1.0,
        )

    assert isinstance(build_gateway(settings("local")), LocalCacheGateway)
    assert isinstance(build_gateway(settings("files")), JsonFileGateway)
    remote = build_gateway(settings("remote"))
    assert isinstance(remote, FallbackGateway)
    remote.close()
