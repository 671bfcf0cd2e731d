"""Logging setup for dexter.

Everything under the ``dexter`` logger hierarchy goes to stderr through
one handler, one line per record:

    12:30:05 [WARN] Lookup failed path='/api/v2/pokemon/25/' reason='...'

Runtime modules use ``logging.getLogger(__name__)``. The ``debug`` and
``warn`` helpers attach structured ``fields`` that are rendered as
``key=value`` pairs after the message.
"""

from __future__ import annotations

import logging
import sys
from enum import IntEnum
from typing import Any


class Level(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR
    OFF = logging.CRITICAL + 1


_RESET = "\033[0m"
_DIM = "\033[2m"

# levelno -> (tag, ANSI style)
_TAGS: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("DEBUG", "\033[35m"),
    logging.INFO: ("INFO", "\033[36m"),
    logging.WARNING: ("WARN", "\033[1;33m"),
    logging.ERROR: ("ERROR", "\033[1;31m"),
    logging.CRITICAL: ("ERROR", "\033[1;31m"),
}


class DexterFormatter(logging.Formatter):
    """Compact ``HH:MM:SS [LEVEL] message key=value`` lines.

    Fields come from ``extra={"fields": {...}}``; string values are
    quoted. Tracebacks from ``log.exception`` follow on the next lines.
    """

    def __init__(self, colors: bool = False) -> None:
        super().__init__(datefmt="%H:%M:%S")
        self.colors = colors

    def _paint(self, text: str, style: str) -> str:
        return f"{style}{text}{_RESET}" if self.colors else text

    def format(self, record: logging.LogRecord) -> str:
        tag, style = _TAGS.get(record.levelno, (record.levelname, ""))
        parts = [
            self._paint(self.formatTime(record, self.datefmt), _DIM),
            self._paint(f"[{tag}]", style),
            record.getMessage(),
        ]
        fields: dict[str, Any] = getattr(record, "fields", None) or {}
        for key, value in fields.items():
            parts.append(f"{key}={value!r}" if isinstance(value, str) else f"{key}={value}")

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


_logger = logging.getLogger("dexter")
_logger.setLevel(Level.INFO)

_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(DexterFormatter(colors=sys.stderr.isatty()))
_logger.addHandler(_handler)
_logger.propagate = False


def parse_level(name: str) -> Level:
    """Map a config string such as ``"info"`` or ``"warning"`` to a Level."""
    key = name.strip().upper()
    if key == "WARNING":
        key = "WARN"
    try:
        return Level[key]
    except KeyError:
        raise ValueError(f"Unknown log level: {name!r}") from None


def set_level(level: Level | str) -> None:
    if isinstance(level, str):
        level = parse_level(level)
    _logger.setLevel(level)


def set_propagate(enabled: bool) -> None:
    """Let records reach the root logger too (pytest's caplog needs this)."""
    _logger.propagate = enabled


def debug(msg: str, **fields: Any) -> None:
    _logger.debug(msg, extra={"fields": fields}, stacklevel=2)


def warn(msg: str, **fields: Any) -> None:
    _logger.warning(msg, extra={"fields": fields}, stacklevel=2)
