"""Command registry: the operator-approved set of runnable commands.

The registry is loaded from a JSON or YAML document mapping each command
name to its parameter schema::

    {
        "ls": {"path": "string"},
        "head": {"count[-n]": "int", "file": "string"}
    }

A ``RegistryStore`` holds the current snapshot for the whole process and
swaps in a new one whenever the source file's modification time advances.
Snapshots are never mutated, so sessions read them without locking.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

import yaml
from pydantic import TypeAdapter, ValidationError

from shellgate.domain.errors import GatewayError
from shellgate.domain.models import CommandSchema, ParamType

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path("config/config.json")
DEFAULT_POLL_INTERVAL = 5.0

_DOCUMENT_ADAPTER = TypeAdapter(dict[str, dict[str, ParamType]])


class Registry(Mapping[str, CommandSchema]):
    """Immutable snapshot of command name -> schema."""

    def __init__(self, commands: Mapping[str, CommandSchema] | None = None) -> None:
        self._commands = MappingProxyType(dict(commands or {}))

    @classmethod
    def from_document(cls, document: Mapping[str, Mapping[str, ParamType | str]]) -> Registry:
        return cls({
            name: CommandSchema.from_mapping(name, declared)
            for name, declared in document.items()
        })

    def __getitem__(self, name: str) -> CommandSchema:
        return self._commands[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return f"Registry({list(self._commands)!r})"

    def require(self, name: str) -> CommandSchema:
        """Return the schema for ``name`` or raise UnknownCommandError."""
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommandError(name) from None

    def to_document(self) -> dict[str, dict[str, str]]:
        """Return the registry as plain nested dicts (the listing payload)."""
        return {name: schema.to_document() for name, schema in self._commands.items()}


def load_registry(path: Path | str) -> Registry:
    """Read and validate a registry document.

    Files ending in ``.yaml`` or ``.yml`` are parsed as YAML, everything
    else as JSON.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to open config file {path}: {e}", path=path) from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}", path=path) from e

    try:
        document = _DOCUMENT_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}", path=path) from e

    return Registry.from_document(document)


class RegistryStore:
    """Process-wide holder of the current registry snapshot.

    Usage::

        store = RegistryStore("config/config.json")
        store.load()        # fatal on failure
        store.start()       # poll for changes in the background
        schema = store.get().require("ls")
        await store.stop()
    """

    def __init__(
        self,
        path: Path | str = DEFAULT_REGISTRY_PATH,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._path = Path(path)
        self._poll_interval = poll_interval
        self._registry = Registry()
        self._last_modified: float | None = None
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def get(self) -> Registry:
        """Return the current snapshot."""
        return self._registry

    def load(self) -> Registry:
        """Load the registry and install it as the current snapshot.

        The modification time is taken before reading, so an edit racing
        the read is picked up by the next poll.

        Raises:
            ConfigError: If the source is missing or invalid.
        """
        try:
            modified = self._path.stat().st_mtime
        except OSError as e:
            raise ConfigError(
                f"Failed to open config file {self._path}: {e}", path=self._path
            ) from e
        registry = load_registry(self._path)
        self._registry = registry
        self._last_modified = modified
        logger.info("Loaded commands from %s: %s", self._path, ", ".join(registry) or "(none)")
        return registry

    def reload_if_changed(self) -> bool:
        """Reload when the source's modification time is strictly later.

        A failed reload keeps the current snapshot. Returns whether a new
        snapshot was installed.
        """
        try:
            modified = self._path.stat().st_mtime
        except OSError as e:
            logger.warning("Failed to stat config file %s: %s", self._path, e)
            return False

        if self._last_modified is not None and modified <= self._last_modified:
            return False

        first_observation = self._last_modified is None
        self._last_modified = modified
        if first_observation:
            return False

        logger.info("Config file %s changed, reloading", self._path)
        try:
            registry = load_registry(self._path)
        except ConfigError as e:
            logger.error("Reload failed, keeping previous commands: %s", e)
            return False
        self._registry = registry
        logger.info("Reloaded commands: %s", ", ".join(registry) or "(none)")
        return True

    def start(self) -> None:
        """Start polling the source in a background task."""
        if self.is_watching:
            return
        self._watch_task = asyncio.create_task(self.watch(), name="registry-watch")
        logger.debug("Watching %s every %.1fs", self._path, self._poll_interval)

    async def stop(self) -> None:
        """Stop the background poll task."""
        if self._watch_task is None:
            return
        self._watch_task.cancel()
        try:
            await self._watch_task
        except asyncio.CancelledError:
            pass
        self._watch_task = None

    async def watch(self) -> None:
        """Poll the source every ``poll_interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(self._poll_interval)
            await asyncio.to_thread(self.reload_if_changed)


class ConfigError(GatewayError):
    """Raised when the registry source is missing or invalid."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = path


class UnknownCommandError(GatewayError):
    """Raised when a request names a command absent from the registry."""

    def __init__(self, command: str) -> None:
        super().__init__("Command not found")
        self.command = command
