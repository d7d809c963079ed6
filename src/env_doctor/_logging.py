"""Colored logging configuration for env-doctor."""

from __future__ import annotations

import logging
import sys
from typing import ClassVar

_PACKAGE = "env_doctor"


def _short_module_name(name: str) -> str:
    if name.startswith(f"{_PACKAGE}."):
        return name[len(_PACKAGE) + 1 :].lstrip("_")
    if name == _PACKAGE:
        return "EnvDoctor"
    return name


class PlainFormatter(logging.Formatter):
    """Plain formatter in compact bracket style.

    Formats log messages as:
    [L YYYY-MM-DD HH:MM:SS.mmm module] message
    """

    LEVEL_CODES: ClassVar[dict[str, str]] = {
        "DEBUG": "D",
        "INFO": "I",
        "WARNING": "W",
        "ERROR": "E",
        "CRITICAL": "C",
    }

    def _prefix(self, record: logging.LogRecord) -> str:
        level_code = self.LEVEL_CODES.get(record.levelname, record.levelname[0])
        ct = self.converter(record.created)
        timestamp = (
            f"{ct.tm_year:04d}-{ct.tm_mon:02d}-{ct.tm_mday:02d} "
            f"{ct.tm_hour:02d}:{ct.tm_min:02d}:{ct.tm_sec:02d}.{int(record.msecs):03d}"
        )
        return f"[{level_code} {timestamp} {_short_module_name(record.name)}]"

    def _decorate(self, prefix: str, record: logging.LogRecord) -> str:
        return prefix

    def format(self, record: logging.LogRecord) -> str:
        message = f"{self._decorate(self._prefix(record), record)} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class ColoredFormatter(PlainFormatter):
    """Same layout as PlainFormatter with the prefix colored by level."""

    # ANSI color codes
    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET: ClassVar[str] = "\033[0m"

    def _decorate(self, prefix: str, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        return f"{color}{prefix}{self.RESET}"


def get_logger(name: str) -> logging.Logger:
    """Return the logger for an env-doctor module."""
    return logging.getLogger(name)


def setup_colored_logging(level: int = logging.INFO) -> None:
    """Configure colored logging for env-doctor.

    Args:
        level: The logging level to use (e.g., logging.INFO, logging.DEBUG)
    """
    supports_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    formatter = ColoredFormatter() if supports_color else PlainFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
