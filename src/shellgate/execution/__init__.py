"""Command execution for shellgate.

Turns a validated request into a running process: builds the argument
vector from the command schema, then starts the process and streams its
output.
"""

from shellgate.execution.arguments import (
    ArgumentError,
    InvalidTypeError,
    MissingArgumentError,
    build_arguments,
    format_invocation,
)
from shellgate.execution.session import (
    ExecutionSession,
    ExitOutcome,
    ProcessExitError,
    SpawnError,
    StreamWriteError,
)

__all__ = [
    "ArgumentError",
    "ExecutionSession",
    "ExitOutcome",
    "InvalidTypeError",
    "MissingArgumentError",
    "ProcessExitError",
    "SpawnError",
    "StreamWriteError",
    "build_arguments",
    "format_invocation",
]
