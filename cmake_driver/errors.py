"""Exception types raised while orchestrating a CMake build."""
from __future__ import annotations


class BuildError(RuntimeError):
    """Base class for fatal orchestration failures."""


class MissingEnvironmentError(BuildError):
    """Raised when a required environment variable is not set."""

    def __init__(self, name: str) -> None:
        super().__init__(f"environment variable `{name}` not defined")
        self.name = name


class ConfigurationError(BuildError, ValueError):
    """Raised for unsupported platform, architecture or generator combinations."""


__all__ = ["BuildError", "ConfigurationError", "MissingEnvironmentError"]
