"""Subprocess lifecycle for one gateway session.

An ``ExecutionSession`` owns a single child process started with an
explicit argument vector. Its stdout and stderr are read concurrently and
forwarded, chunk by chunk, to a sink coroutine supplied by the caller.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import signal
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from shellgate.domain.errors import GatewayError

logger = logging.getLogger(__name__)

# Bytes read from a stream per chunk
DEFAULT_CHUNK_SIZE = 1024
# Seconds between SIGTERM and SIGKILL when terminating
DEFAULT_TERMINATE_GRACE = 2.0
# Chunks buffered between the stream readers and the sink
_QUEUE_SIZE = 64

Sink = Callable[[str], Awaitable[None]]


class ExitOutcome(BaseModel):
    """How a session's process terminated."""

    model_config = ConfigDict(frozen=True)

    returncode: int = Field(description="Exit status, negative for a terminating signal")

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def description(self) -> str:
        if self.returncode < 0:
            try:
                name = signal.Signals(-self.returncode).name
            except ValueError:
                name = str(-self.returncode)
            return f"signal: {name}"
        return f"exit status {self.returncode}"

    def raise_for_status(self) -> None:
        """Raise ProcessExitError unless the process exited with status 0."""
        if not self.succeeded:
            raise ProcessExitError(self)


class ExecutionSession:
    """Owns one child process and its two output streams.

    Usage::

        session = await ExecutionSession.start("ls", ["-l", "/tmp"])
        async with session:
            await session.pump(websocket_send)
            outcome = await session.wait()

    Leaving the ``async with`` block terminates the process if it is
    still running.
    """

    def __init__(
        self,
        command: str,
        arguments: list[str],
        process: asyncio.subprocess.Process,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        terminate_grace: float = DEFAULT_TERMINATE_GRACE,
    ) -> None:
        self._command = command
        self._arguments = list(arguments)
        self._process = process
        self._chunk_size = chunk_size
        self._terminate_grace = terminate_grace

    @classmethod
    async def start(
        cls,
        command: str,
        arguments: list[str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        terminate_grace: float = DEFAULT_TERMINATE_GRACE,
    ) -> ExecutionSession:
        """Launch ``command`` with ``arguments`` without waiting for it.

        Raises:
            SpawnError: If the executable cannot be started.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *arguments,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(command, e) from e

        logger.info("Started %s %s (pid=%d)", command, arguments, process.pid)
        return cls(
            command,
            arguments,
            process,
            chunk_size=chunk_size,
            terminate_grace=terminate_grace,
        )

    @property
    def command(self) -> str:
        return self._command

    @property
    def arguments(self) -> list[str]:
        return list(self._arguments)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def is_running(self) -> bool:
        return self._process.returncode is None

    async def pump(self, sink: Sink) -> None:
        """Forward output chunks to ``sink`` until both streams hit EOF.

        stdout and stderr are read concurrently; chunks reach the sink in
        the order they were read, with no ordering between the streams.

        Raises:
            StreamWriteError: If the sink fails. Reading stops at once.
        """
        queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=_QUEUE_SIZE)
        readers = [
            asyncio.create_task(self._read_stream(stream, queue), name=f"{self._command}-{label}")
            for label, stream in (("stdout", self._process.stdout), ("stderr", self._process.stderr))
            if stream is not None
        ]
        open_streams = len(readers)
        try:
            while open_streams:
                chunk = await queue.get()
                if chunk is None:
                    open_streams -= 1
                    continue
                try:
                    await sink(chunk)
                except StreamWriteError:
                    raise
                except Exception as e:
                    raise StreamWriteError(str(e)) from e
        finally:
            for reader in readers:
                reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)

    async def wait(self) -> ExitOutcome:
        """Wait for the process to exit."""
        returncode = await self._process.wait()
        outcome = ExitOutcome(returncode=returncode)
        logger.info("%s (pid=%d) finished: %s", self._command, self.pid, outcome.description)
        return outcome

    async def terminate(self, grace: float | None = None) -> None:
        """Stop the process: SIGTERM, then SIGKILL after ``grace`` seconds."""
        if not self.is_running:
            return
        grace = self._terminate_grace if grace is None else grace
        try:
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()
        except ProcessLookupError:
            pass
        logger.info("Terminated %s (pid=%d)", self._command, self.pid)

    async def __aenter__(self) -> ExecutionSession:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.terminate()

    async def _read_stream(
        self, stream: asyncio.StreamReader, queue: asyncio.Queue[str | None]
    ) -> None:
        """Read one stream in chunks, decoding UTF-8 across chunk boundaries."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stream.read(self._chunk_size)
                if not data:
                    break
                text = decoder.decode(data)
                if text:
                    await queue.put(text)
        except OSError as e:
            logger.warning("Error reading output of %s: %s", self._command, e)
        tail = decoder.decode(b"", final=True)
        if tail:
            await queue.put(tail)
        await queue.put(None)


class SpawnError(GatewayError):
    """Raised when a command's executable cannot be started."""

    def __init__(self, command: str, reason: BaseException) -> None:
        super().__init__(f"Error starting command: {reason}")
        self.command = command
        self.reason = reason


class StreamWriteError(GatewayError):
    """Raised when output cannot be delivered to the client."""


class ProcessExitError(GatewayError):
    """Raised by ExitOutcome.raise_for_status for a non-zero exit."""

    def __init__(self, outcome: ExitOutcome) -> None:
        super().__init__(f"Command execution failed: {outcome.description}")
        self.outcome = outcome
