"""Message channels carrying one gateway session.

A channel delivers exactly one inbound request and then any number of
outbound text messages. Used as an async context manager it is accepted
on entry and always released on exit, whichever way the session ends.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from shellgate.domain.errors import GatewayError
from shellgate.domain.models import ExecutionRequest
from shellgate.execution.session import StreamWriteError

logger = logging.getLogger(__name__)


class Channel(ABC):
    """Abstract per-session duplex connection to one client."""

    @abstractmethod
    async def accept(self) -> None:
        """Complete the connection handshake.

        Raises:
            ConnectionSetupError: If the connection cannot be established.
        """
        ...

    @abstractmethod
    async def receive_request(self) -> ExecutionRequest:
        """Read the single inbound request.

        Raises:
            MalformedRequestError: If the message is missing or unreadable.
        """
        ...

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send one outbound text message.

        Raises:
            StreamWriteError: If the client can no longer be reached.
        """
        ...

    @abstractmethod
    async def wait_closed(self) -> None:
        """Return once the client has disconnected."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...

    async def __aenter__(self) -> Channel:
        await self.accept()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class WebSocketChannel(Channel):
    """Channel over a FastAPI/Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    @property
    def peer(self) -> str:
        client = self._websocket.client
        return f"{client.host}:{client.port}" if client else "unknown"

    async def accept(self) -> None:
        try:
            await self._websocket.accept()
        except (RuntimeError, OSError) as e:
            raise ConnectionSetupError(f"Failed to upgrade to WebSocket: {e}") from e
        logger.debug("Accepted session from %s", self.peer)

    async def receive_request(self) -> ExecutionRequest:
        try:
            message = await self._websocket.receive()
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise MalformedRequestError(str(e)) from e
        if message["type"] == "websocket.disconnect":
            raise MalformedRequestError("client disconnected before sending a request")

        payload = message.get("text")
        if payload is None:
            payload = message.get("bytes")
        if payload is None:
            raise MalformedRequestError("empty message")
        try:
            return ExecutionRequest.model_validate_json(payload)
        except ValidationError as e:
            raise MalformedRequestError(str(e)) from e

    async def send_text(self, text: str) -> None:
        try:
            await self._websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise StreamWriteError(f"Error writing to WebSocket: {e}") from e

    async def wait_closed(self) -> None:
        while True:
            try:
                message = await self._websocket.receive()
            except (WebSocketDisconnect, RuntimeError, OSError):
                return
            if message["type"] == "websocket.disconnect":
                return
            logger.debug("Ignoring extra message from %s", self.peer)

    async def close(self) -> None:
        if (
            self._websocket.application_state == WebSocketState.DISCONNECTED
            or self._websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self._websocket.close()
        except (RuntimeError, OSError) as e:
            logger.debug("Error closing WebSocket: %s", e)


class ConnectionSetupError(GatewayError):
    """Raised when the inbound connection cannot be upgraded."""


class MalformedRequestError(GatewayError):
    """Raised when the inbound request is missing or unreadable."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("Failed to read command request")
        self.detail = detail
