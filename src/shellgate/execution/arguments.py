"""Argument vector construction from a command schema.

Values supplied by the caller never pass through a shell: each one becomes
a single argv element. The only tokens a caller cannot choose freely are
the executable (a registry key) and flag tokens (declared in the schema).
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

from shellgate.domain.errors import GatewayError
from shellgate.domain.models import CommandSchema, FlaggedParameter, ParamType

logger = logging.getLogger(__name__)

# Base-10 integer with optional sign, ASCII digits only
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


def build_arguments(schema: CommandSchema, supplied: Mapping[str, str]) -> list[str]:
    """Build the argument vector for ``schema`` from caller-supplied values.

    Walks the schema in declaration order. A plain parameter with no value
    (absent or empty) is skipped; a flagged parameter with no value is an
    error. Flagged parameters emit ``flag, value``, plain ones ``value``.

    Raises:
        MissingArgumentError: A flagged parameter has no value.
        InvalidTypeError: A value does not match its declared type.
    """
    arguments: list[str] = []
    for spec in schema.parameters:
        key = spec.key
        value = supplied.get(key.key, "")
        if not value:
            if isinstance(key, FlaggedParameter):
                raise MissingArgumentError(key.key)
            continue

        if spec.type is ParamType.INT and _INT_PATTERN.fullmatch(value) is None:
            raise InvalidTypeError(key.key)

        if isinstance(key, FlaggedParameter):
            arguments.append(key.flag)
        arguments.append(value)

    logger.debug("Built arguments for %s: %s", schema.name, arguments)
    return arguments


def format_invocation(command: str, arguments: list[str]) -> str:
    """Render the notice echoed to the caller before the process starts."""
    return f"Executing command: {command} [{' '.join(arguments)}]"


class ArgumentError(GatewayError):
    """Raised when caller-supplied parameters fail validation."""

    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.key = key


class MissingArgumentError(ArgumentError):
    """Raised when a flagged parameter has no value."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Missing argument: {key}", key)


class InvalidTypeError(ArgumentError):
    """Raised when an int parameter's value is not a base-10 integer."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Argument {key} must be an integer", key)
