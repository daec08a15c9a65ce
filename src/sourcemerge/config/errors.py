"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values or source instructions are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required setting or instruction field is absent or blank."""


class InvalidInstructionsError(ConfigurationError):
    """Raised when an instructions document cannot be parsed into sources."""

    def __init__(self, path: object, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid instructions in {path}: {detail}")
