"""Command registry for shellgate.

Public API:
    Registry -- Immutable snapshot of command name -> schema
    RegistryStore -- Process-wide holder with live reload
    load_registry -- Parse a JSON/YAML registry document
"""

from shellgate.registry.store import (
    ConfigError,
    Registry,
    RegistryStore,
    UnknownCommandError,
    load_registry,
)

__all__ = [
    "ConfigError",
    "Registry",
    "RegistryStore",
    "UnknownCommandError",
    "load_registry",
]
