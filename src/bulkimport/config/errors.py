"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a setting, an environment variable or a mapping file is invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required settings are absent or blank."""
