"""Errors raised while turning declared table metadata into Pulumi arguments."""


class ConfigurationError(ValueError):
    """Declared table metadata (or settings) cannot produce a valid table definition."""
