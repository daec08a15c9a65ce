"""Logging setup for command-line merge runs."""

from __future__ import annotations

import logging

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


def resolve_log_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Configure the root logger once.

    ``level`` takes a number or a name such as ``"debug"``. Stage warnings and
    progress messages share the one stream handler. Pass ``force=True`` to
    replace handlers installed earlier, e.g. in tests.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=force,
    )
