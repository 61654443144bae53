"""Gateway session orchestrator.

Drives one client connection through the session state machine:

    AWAIT_REQUEST -> VALIDATING -> EXECUTING -> STREAMING -> COMPLETED

with ERRORED reachable from every state. Each failure is reported to the
caller once as a text notice and ends the session; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, TypeVar

from shellgate.domain.models import SessionState
from shellgate.execution.arguments import ArgumentError, build_arguments, format_invocation
from shellgate.execution.session import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TERMINATE_GRACE,
    ExecutionSession,
    ExitOutcome,
    ProcessExitError,
    SpawnError,
    StreamWriteError,
)
from shellgate.gateway.channel import Channel, ConnectionSetupError, MalformedRequestError
from shellgate.registry.store import RegistryStore, UnknownCommandError

logger = logging.getLogger(__name__)

SUCCESS_NOTICE = "\nCommand execution completed successfully"

T = TypeVar("T")


class CommandGateway:
    """Serves execution requests against the current registry snapshot.

    One gateway may serve any number of concurrent connections; each call
    to ``handle()`` owns its channel and its process exclusively.
    """

    def __init__(
        self,
        store: RegistryStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        terminate_grace: float = DEFAULT_TERMINATE_GRACE,
    ) -> None:
        self._store = store
        self._chunk_size = chunk_size
        self._terminate_grace = terminate_grace

    async def handle(self, channel: Channel) -> SessionState:
        """Run one session on ``channel`` and return its final state."""
        try:
            async with channel:
                return await self._run(channel)
        except ConnectionSetupError as e:
            logger.warning("%s", e)
            return SessionState.ERRORED

    async def _run(self, channel: Channel) -> SessionState:
        state = SessionState.AWAIT_REQUEST
        try:
            request = await channel.receive_request()

            state = SessionState.VALIDATING
            # The snapshot is read once; later reloads do not affect this session.
            schema = self._store.get().require(request.command)
            arguments = build_arguments(schema, request.args)

            state = SessionState.EXECUTING
            await channel.send_text(format_invocation(schema.name, arguments))
            session = await ExecutionSession.start(
                schema.name,
                arguments,
                chunk_size=self._chunk_size,
                terminate_grace=self._terminate_grace,
            )

            state = SessionState.STREAMING
            async with session:
                outcome = await self._stream(channel, session)

            try:
                outcome.raise_for_status()
            except ProcessExitError as e:
                await channel.send_text(f"\n{e}")
            else:
                await channel.send_text(SUCCESS_NOTICE)
            return SessionState.COMPLETED

        except (MalformedRequestError, UnknownCommandError, ArgumentError, SpawnError) as e:
            logger.info("Session aborted while %s: %s", state.value, e)
            await self._notify(channel, str(e))
            return SessionState.ERRORED
        except StreamWriteError as e:
            logger.info("Client went away while %s: %s", state.value, e)
            return SessionState.ERRORED

    async def _stream(self, channel: Channel, session: ExecutionSession) -> ExitOutcome:
        """Pump output until EOF, then wait for the process.

        The hangup watcher stays armed until the process exits, so a
        process that closes its pipes early is still stopped on disconnect.

        Raises:
            StreamWriteError: If the client disconnects first.
        """
        hangup = asyncio.create_task(channel.wait_closed(), name="hangup-watch")
        try:
            await self._until_hangup(session.pump(channel.send_text), hangup, "output-pump")
            return await self._until_hangup(session.wait(), hangup, "process-wait")
        finally:
            if not hangup.done():
                hangup.cancel()
            await asyncio.gather(hangup, return_exceptions=True)

    @staticmethod
    async def _until_hangup(
        coro: Coroutine[Any, Any, T], hangup: asyncio.Task[None], name: str
    ) -> T:
        """Run ``coro`` unless ``hangup`` completes first."""
        task = asyncio.create_task(coro, name=name)
        try:
            await asyncio.wait({task, hangup}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            raise StreamWriteError("client disconnected")
        return task.result()

    async def _notify(self, channel: Channel, text: str) -> None:
        try:
            await channel.send_text(text)
        except StreamWriteError as e:
            logger.debug("Could not deliver notice: %s", e)
