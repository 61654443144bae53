"""Tests for the FastAPI gateway application."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from shellgate.config.settings import RegistryConfig, ServerConfig, Settings
from shellgate.gateway.server import create_app
from shellgate.registry.store import RegistryStore


def _receive_until_terminal(ws) -> list[str]:
    messages = [ws.receive_text()]
    while not messages[-1].startswith("\nCommand execution"):
        messages.append(ws.receive_text())
    return messages


@pytest.fixture
def settings(tmp_path: Path, registry_path: Path) -> Settings:
    return Settings(
        server=ServerConfig(static_dir=str(tmp_path / "no-static")),
        registry=RegistryConfig(path=str(registry_path), poll_interval=0.05),
    )


@pytest.fixture
def client(store: RegistryStore, settings: Settings) -> TestClient:
    """A test client with a pre-loaded store injected (lifespan not run)."""
    app = create_app(store=store, settings=settings)
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["commands"] == 3


class TestCommandListing:
    def test_listing_matches_loaded_registry(self, client: TestClient, registry_path: Path) -> None:
        resp = client.get("/api/commands")
        assert resp.status_code == 200
        assert resp.json() == json.loads(registry_path.read_text())

    def test_listing_allows_any_origin(self, client: TestClient) -> None:
        resp = client.get("/api/commands")
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_listing_follows_reload(
        self, client: TestClient, store: RegistryStore, registry_path: Path
    ) -> None:
        registry_path.write_text(json.dumps({"ls": {"path": "string"}}))
        stat = registry_path.stat()
        os.utime(registry_path, (stat.st_atime, stat.st_mtime + 10))
        assert store.reload_if_changed() is True
        assert client.get("/api/commands").json() == {"ls": {"path": "string"}}


class TestExecuteWebSocket:
    def test_echo_scenario(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_json({"command": "echo", "args": {"msg": "hi"}})
            messages = _receive_until_terminal(ws)
        assert messages[0] == "Executing command: echo [hi]"
        assert "hi" in "".join(messages[1:-1])
        assert messages[-1] == "\nCommand execution completed successfully"

    def test_cmd_field_from_browser_client(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_json({"cmd": "echo", "args": {"msg": "legacy"}})
            messages = _receive_until_terminal(ws)
        assert messages[0] == "Executing command: echo [legacy]"

    def test_failure_notice(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_json({"command": "sh", "args": {"script[-c]": "exit 1"}})
            messages = _receive_until_terminal(ws)
        assert messages[-1] == "\nCommand execution failed: exit status 1"

    def test_unknown_command(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_json({"command": "rm", "args": {"path": "/"}})
            assert ws.receive_text() == "Command not found"

    def test_malformed_request(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_text("not json")
            assert ws.receive_text() == "Failed to read command request"

    def test_invalid_argument(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/execute") as ws:
            ws.send_json({"command": "head", "args": {"count[-n]": "x", "file": "f"}})
            assert ws.receive_text() == "Argument count[-n] must be an integer"


class TestLifespan:
    def test_startup_loads_registry_and_watches(self, settings: Settings, registry_path: Path) -> None:
        app = create_app(settings=settings)
        with TestClient(app) as client:
            health = client.get("/health").json()
            assert health["commands"] == 3
            assert health["watching"] is True
            assert client.get("/api/commands").json() == json.loads(registry_path.read_text())
        assert app.state.store.is_watching is False

    def test_default_settings_honour_config_path(
        self, tmp_path: Path, registry_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # No shellgate.yaml, config.json or static dir under the working directory
        workdir = tmp_path / "workdir"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        monkeypatch.setenv("CONFIG_PATH", str(registry_path))

        app = create_app()
        with TestClient(app) as client:
            assert client.get("/health").json()["commands"] == 3
            assert client.get("/api/commands").json() == json.loads(registry_path.read_text())
        assert Path(app.state.store.path) == registry_path


class TestStaticFiles:
    def test_serves_index(self, tmp_path: Path, store: RegistryStore, registry_path: Path) -> None:
        static_dir = tmp_path / "static"
        static_dir.mkdir()
        (static_dir / "index.html").write_text("<html>shellgate</html>")
        settings = Settings(
            server=ServerConfig(static_dir=str(static_dir)),
            registry=RegistryConfig(path=str(registry_path)),
        )
        client = TestClient(create_app(store=store, settings=settings))
        resp = client.get("/")
        assert resp.status_code == 200
        assert "shellgate" in resp.text
        # API routes still take precedence over the static mount
        assert client.get("/api/commands").status_code == 200
