"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, env_int
from .errors import ConfigurationError, InvalidInstructionsError, MissingConfigurationError
from .logging import configure_logging, resolve_log_level
from .merge import GenderTallyConfig, MergeConfig, get_merge_config

__all__ = [
    "ConfigurationError",
    "GenderTallyConfig",
    "InvalidInstructionsError",
    "MergeConfig",
    "MissingConfigurationError",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "get_merge_config",
    "resolve_log_level",
]
