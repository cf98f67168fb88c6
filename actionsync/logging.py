"""Logging setup for the actionsync command line.

Components log through module-level ``logging.getLogger(__name__)`` loggers;
this module only normalises the requested level and installs a handler.

Example:
>>> from actionsync.logging import configure_logging
>>> configure_logging("debug")
('DEBUG', False)

"""

from __future__ import annotations

import enum
import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogLevel(enum.StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a log level string and report invalid inputs.

    Parameters
    ----------
    level : str | None
        Raw log level string to normalize.

    Returns
    -------
    tuple[str, bool]
        The normalized log level and a flag indicating invalid input.

    """
    if not level:
        return ("INFO", True)

    normalized = level.strip().upper()
    if normalized == LogLevel.WARN:
        return (LogLevel.WARNING.value, False)
    if normalized in LogLevel.__members__:
        return (normalized, False)

    return ("INFO", True)


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Configure root logging and return the normalized level.

    Parameters
    ----------
    level : str | None
        Raw log level string to normalize.
    force : bool, optional
        Whether to replace any existing handler configuration.

    Returns
    -------
    tuple[str, bool]
        The normalized log level and a flag indicating invalid input.

    """
    normalized, invalid = normalize_log_level(level)
    logging.basicConfig(level=normalized, format=_LOG_FORMAT, force=force)
    return (normalized, invalid)


__all__ = ["LogLevel", "configure_logging", "normalize_log_level"]
