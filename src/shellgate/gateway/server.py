"""FastAPI application for the shellgate server.

Routes:

    GET /health         -> {"status": "ok", "commands": 3}
    GET /api/commands   -> {"ls": {"path": "string"}, ...}
    WS  /ws/execute     <- {"command": "ls", "args": {"path": "/tmp"}}
    GET /               -> static client files, when the directory exists
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Response, WebSocket
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from shellgate.config.settings import Settings, load_settings
from shellgate.gateway.channel import WebSocketChannel
from shellgate.gateway.gateway import CommandGateway
from shellgate.registry.store import RegistryStore

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = "ok"
    commands: int = 0
    watching: bool = False


def create_app(
    store: RegistryStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the gateway application.

    Args:
        store: Optional pre-loaded RegistryStore. When omitted the registry
               is loaded during startup, and a ConfigError aborts it.
        settings: Configuration; defaults to ``load_settings()``.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        s: RegistryStore | None = app.state.store
        if s is None:
            s = RegistryStore(
                path=settings.registry.path,
                poll_interval=settings.registry.poll_interval,
            )
            s.load()
            app.state.store = s
        s.start()
        logger.info("Gateway started (%d commands from %s)", len(s.get()), s.path)
        yield
        await s.stop()
        logger.info("Gateway stopped")

    app = FastAPI(
        title="shellgate",
        description="Run operator-defined commands and stream their output",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store

    @app.get("/health")
    async def health_check() -> HealthResponse:
        s: RegistryStore | None = app.state.store
        return HealthResponse(
            status="ok",
            commands=len(s.get()) if s else 0,
            watching=s.is_watching if s else False,
        )

    @app.get("/api/commands")
    async def list_commands(response: Response) -> dict[str, dict[str, str]]:
        s: RegistryStore = app.state.store
        response.headers["Access-Control-Allow-Origin"] = "*"
        return s.get().to_document()

    @app.websocket("/ws/execute")
    async def execute_command(websocket: WebSocket) -> None:
        gateway = CommandGateway(
            app.state.store,
            chunk_size=settings.execution.chunk_size,
            terminate_grace=settings.execution.terminate_grace,
        )
        state = await gateway.handle(WebSocketChannel(websocket))
        logger.debug("Session finished: %s", state.value)

    static_dir = Path(settings.server.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.debug("Static directory %s not found, not serving a client UI", static_dir)

    return app


def main() -> None:
    """Entry point for running the gateway server standalone."""
    settings = load_settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
