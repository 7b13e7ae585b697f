"""Logging utilities for expression rendering."""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

LOGGER_NAME = "aggexpr"


class LogLevel(IntEnum):
    """Log levels for the aggexpr logger."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


class ILoggable(ABC):
    """Interface for logging functionality."""

    @abstractmethod
    def log(self, level: LogLevel, message: str, *args: Any) -> None:
        """Log a message at the specified level."""
        ...

    def debug(self, message: str, *args: Any) -> None:
        """Log a debug message."""
        self.log(LogLevel.DEBUG, message, *args)

    def info(self, message: str, *args: Any) -> None:
        """Log an info message."""
        self.log(LogLevel.INFO, message, *args)

    def warning(self, message: str, *args: Any) -> None:
        """Log a warning message."""
        self.log(LogLevel.WARNING, message, *args)

    def error(self, message: str, *args: Any) -> None:
        """Log an error message."""
        self.log(LogLevel.ERROR, message, *args)


_STDLIB_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class StandardLogger(ILoggable):
    """``ILoggable`` backed by the standard library ``logging`` module."""

    def __init__(self, name: str = LOGGER_NAME) -> None:
        self._logger = logging.getLogger(name)

    def log(self, level: LogLevel, message: str, *args: Any) -> None:
        self._logger.log(_STDLIB_LEVELS[level], message, *args)


def configure_logging(verbose: bool, debug: bool = False) -> None:
    """Configure logging output based on verbosity.

    Args:
        verbose: Whether to enable INFO logging to stderr
        debug: Lower the threshold to DEBUG (implies verbose)
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False

    if verbose or debug:
        level = logging.DEBUG if debug else logging.INFO
        logger.setLevel(level)
        if not any(isinstance(handler, logging.StreamHandler) for handler in logger.handlers):
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(handler)
        for handler in logger.handlers:
            handler.setLevel(level)
    else:
        logger.setLevel(logging.WARNING)
        logger.handlers.clear()
