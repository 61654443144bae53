"""Core domain models for the shellgate system.

These models represent the data flowing through a gateway session: the
command schemas declared by the operator, the execution request sent by a
client, and the state a session moves through.
"""

from __future__ import annotations

import enum
import re
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ParamType(str, enum.Enum):
    """Declared type of a command parameter."""

    STRING = "string"
    INT = "int"


class SessionState(str, enum.Enum):
    """Lifecycle of a single gateway session."""

    AWAIT_REQUEST = "await_request"
    VALIDATING = "validating"
    EXECUTING = "executing"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"


# ---------------------------------------------------------------------------
# Parameter keys (discriminated union)
# ---------------------------------------------------------------------------

# A key written as ``name[flag]`` emits the flag token ahead of its value.
_FLAG_PATTERN = re.compile(r"\[(.*)\]$")


class PlainParameter(BaseModel):
    """A parameter whose value is emitted on its own."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    key: str = Field(description="Parameter key as declared in the registry")


class FlaggedParameter(BaseModel):
    """A parameter emitted as a literal flag token followed by its value."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flagged"] = "flagged"
    key: str = Field(description="Parameter key as declared, e.g. 'count[-n]'")
    name: str = Field(description="Key text before the brackets, e.g. 'count'")
    flag: str = Field(description="Flag token from inside the brackets, e.g. '-n'")


ParameterKey = Annotated[
    Union[PlainParameter, FlaggedParameter],
    Field(discriminator="kind"),
]


def parse_parameter_key(key: str) -> PlainParameter | FlaggedParameter:
    """Classify a declared parameter key as plain or flagged."""
    match = _FLAG_PATTERN.search(key)
    if match is None:
        return PlainParameter(key=key)
    return FlaggedParameter(key=key, name=key[: match.start()], flag=match.group(1))


# ---------------------------------------------------------------------------
# Registry models
# ---------------------------------------------------------------------------


class ParameterSpec(BaseModel):
    """One entry of a command schema: a parsed key and its declared type."""

    model_config = ConfigDict(frozen=True)

    key: ParameterKey
    type: ParamType


class CommandSchema(BaseModel):
    """The parameters an operator declared for one command.

    Keys are parsed once when the schema is built; argument construction
    walks ``parameters`` in declaration order.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Command name, which is also the executable")
    parameters: tuple[ParameterSpec, ...] = Field(default=())

    @classmethod
    def from_mapping(cls, name: str, declared: Mapping[str, ParamType | str]) -> CommandSchema:
        return cls(
            name=name,
            parameters=tuple(
                ParameterSpec(key=parse_parameter_key(key), type=ParamType(type_))
                for key, type_ in declared.items()
            ),
        )

    def to_document(self) -> dict[str, str]:
        """Return the schema as declared: parameter key -> type string."""
        return {spec.key.key: spec.type.value for spec in self.parameters}


# ---------------------------------------------------------------------------
# Session models
# ---------------------------------------------------------------------------


class ExecutionRequest(BaseModel):
    """The single inbound message of a session.

    The command name is read from ``command``; the ``cmd`` spelling sent by
    the original browser client is accepted as well.
    """

    model_config = ConfigDict(frozen=True)

    command: str = Field(validation_alias=AliasChoices("command", "cmd"))
    args: dict[str, str] = Field(default_factory=dict)

    @field_validator("args", mode="before")
    @classmethod
    def _stringify_args(cls, value: Any) -> Any:
        # Form clients send number inputs as JSON numbers.
        if value is None:
            return {}
        if isinstance(value, dict):
            return {
                key: str(item)
                if isinstance(item, (int, float)) and not isinstance(item, bool)
                else item
                for key, item in value.items()
            }
        return value
