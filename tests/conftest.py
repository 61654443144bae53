"""Shared test fixtures for the shellgate test suite.

Provides registry documents on disk, loaded stores and an in-memory
channel for driving gateway sessions without a network.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from shellgate.domain.models import ExecutionRequest
from shellgate.gateway.channel import Channel, MalformedRequestError
from shellgate.execution.session import StreamWriteError
from shellgate.registry.store import RegistryStore


# ---------------------------------------------------------------------------
# Registry Fixtures
# ---------------------------------------------------------------------------


SAMPLE_REGISTRY = {
    "echo": {"msg": "string"},
    "head": {"count[-n]": "int", "file": "string"},
    "sh": {"script[-c]": "string"},
}


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    """A JSON registry document written to a temp directory."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps(SAMPLE_REGISTRY))
    return path


@pytest.fixture
def store(registry_path: Path) -> RegistryStore:
    """A RegistryStore with SAMPLE_REGISTRY loaded."""
    s = RegistryStore(path=registry_path, poll_interval=0.05)
    s.load()
    return s


# ---------------------------------------------------------------------------
# Channel Fixtures
# ---------------------------------------------------------------------------


class FakeChannel(Channel):
    """In-memory channel recording every outbound message.

    ``fail_after`` makes the Nth send (0-based) raise StreamWriteError,
    simulating a client that disconnects mid-stream.
    """

    def __init__(
        self,
        request: ExecutionRequest | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.request = request
        self.sent: list[str] = []
        self.accepted = False
        self.closed = False
        self.fail_after = fail_after
        self.disconnected = asyncio.Event()

    async def accept(self) -> None:
        self.accepted = True

    async def receive_request(self) -> ExecutionRequest:
        if self.request is None:
            raise MalformedRequestError("no request")
        return self.request

    async def send_text(self, text: str) -> None:
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise StreamWriteError("client gone")
        self.sent.append(text)

    async def wait_closed(self) -> None:
        await self.disconnected.wait()

    async def close(self) -> None:
        self.closed = True

    @property
    def output(self) -> str:
        """Everything sent between the invocation notice and the terminal notice."""
        return "".join(self.sent[1:-1])


@pytest.fixture
def make_channel():
    """Factory for FakeChannel instances."""

    def _make(command: str | None = None, args: dict[str, str] | None = None, **kwargs) -> FakeChannel:
        request = None
        if command is not None:
            request = ExecutionRequest(command=command, args=args or {})
        return FakeChannel(request, **kwargs)

    return _make
