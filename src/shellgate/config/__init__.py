"""Configuration management for shellgate.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides, including the unprefixed
CONFIG_PATH that locates the command registry.
"""

from shellgate.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
