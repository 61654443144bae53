"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from shellgate.config.settings import (
    ExecutionConfig,
    RegistryConfig,
    ServerConfig,
    Settings,
    load_settings,
)


class TestSettings:
    def test_default_settings(self) -> None:
        """Default Settings should be valid."""
        settings = Settings()
        assert settings.server.port == 8080
        assert settings.registry.path == "config/config.json"
        assert settings.registry.poll_interval == 5.0
        assert settings.execution.chunk_size == 1024

    def test_server_config_defaults(self) -> None:
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.static_dir == "static"

    def test_poll_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            RegistryConfig(poll_interval=0)

    def test_chunk_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ExecutionConfig(chunk_size=0)

    def test_prefixed_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SHELLGATE_SERVER__PORT", "9090")
        assert Settings().server.port == 9090


class TestLoadSettings:
    def test_load_settings_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """load_settings with missing file should return defaults."""
        monkeypatch.delenv("CONFIG_PATH", raising=False)
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 8080

    def test_load_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CONFIG_PATH", raising=False)
        path = tmp_path / "shellgate.yaml"
        path.write_text(
            "server:\n  port: 9000\n"
            "registry:\n  path: /etc/shellgate/commands.json\n  poll_interval: 1.5\n"
        )
        settings = load_settings(path)
        assert settings.server.port == 9000
        assert settings.registry.path == "/etc/shellgate/commands.json"
        assert settings.registry.poll_interval == 1.5

    def test_config_path_env_overrides_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "shellgate.yaml"
        path.write_text("registry:\n  path: from-yaml.json\n")
        monkeypatch.setenv("CONFIG_PATH", "/srv/commands.json")
        settings = load_settings(path)
        assert settings.registry.path == "/srv/commands.json"
        assert settings.registry.poll_interval == 5.0
