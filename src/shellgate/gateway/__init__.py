"""WebSocket gateway for shellgate.

Accepts one execution request per connection, runs it against the
command registry and streams the process output back to the client.
"""

from shellgate.gateway.channel import (
    Channel,
    ConnectionSetupError,
    MalformedRequestError,
    WebSocketChannel,
)
from shellgate.gateway.gateway import CommandGateway

__all__ = [
    "Channel",
    "CommandGateway",
    "ConnectionSetupError",
    "MalformedRequestError",
    "WebSocketChannel",
    "create_app",
]


def __getattr__(name: str) -> object:
    """Lazy import for the application factory, which pulls in uvicorn."""
    if name == "create_app":
        from shellgate.gateway.server import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
