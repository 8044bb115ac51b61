"""A small leveled logger that writes timestamped lines to stdout."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Known log levels; higher values are more verbose."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    TRACE = 4


_LABELS = {
    LogLevel.ERROR: "ERR",
    LogLevel.WARN: "WRN",
    LogLevel.INFO: "INF",
    LogLevel.DEBUG: "DBG",
}


class Logger:
    """Writes messages whose level does not exceed ``log_level``."""

    def __init__(self, log_level: int) -> None:
        self.log_level = log_level

    def log_msg(self, level: int, worker_id: int, message: str, *args: Any) -> str | None:
        """Return the formatted line, or None when the level is filtered out."""
        if level > self.log_level:
            return None
        now = datetime.now()
        stamp = f"{now:%Y-%m-%d %H:%M:%S}.{now.microsecond:06d}"
        label = _LABELS.get(level, "TRA")
        line = f"{stamp}    {label}: worker {worker_id:03d}: {message}"
        return line + "".join(f", {arg}" for arg in args)

    def log(self, level: int, worker_id: int, message: str, *args: Any) -> None:
        """Print the message followed by a newline."""
        line = self.log_msg(level, worker_id, message, *args)
        if line is not None:
            print(line)

    def logn(self, level: int, worker_id: int, message: str, *args: Any) -> None:
        """Print the message without a trailing newline."""
        line = self.log_msg(level, worker_id, message, *args)
        if line is not None:
            print(line, end="")