"""Configuration errors; the CLI maps both to exit status 2."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but unusable (bad number, invalid priority table)."""


class MissingConfigurationError(ConfigurationError):
    """A required setting, usually a provider API key, is absent or blank."""
