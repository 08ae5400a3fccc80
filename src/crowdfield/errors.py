from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a simulation cannot be built from the given configuration."""
