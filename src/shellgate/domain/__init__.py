"""Domain models for shellgate.

This package contains the core data structures and enumerations shared by
the registry, the argument builder and the gateway. All models use
Pydantic v2 for validation and serialization.
"""

from shellgate.domain.errors import GatewayError
from shellgate.domain.models import (
    CommandSchema,
    ExecutionRequest,
    FlaggedParameter,
    ParameterKey,
    ParameterSpec,
    ParamType,
    PlainParameter,
    SessionState,
    parse_parameter_key,
)

__all__ = [
    "CommandSchema",
    "ExecutionRequest",
    "FlaggedParameter",
    "GatewayError",
    "ParameterKey",
    "ParameterSpec",
    "ParamType",
    "PlainParameter",
    "SessionState",
    "parse_parameter_key",
]
