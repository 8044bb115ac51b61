"""The ``log`` action: emit a number of log records through a chosen logger style."""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from .helpers import ActionError, _atoi


class LoggerType(str, Enum):
    """The logger flavour whose output format is imitated."""

    LOGF = "logf"
    LOGRUS = "logrus"


class LogType(str, Enum):
    """The record encoding."""

    TEXT = "text"
    JSON = "json"


_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f'strconv.ParseBool: parsing "{text}": invalid syntax')


_LEVEL_NAMES = {
    LoggerType.LOGF: {logging.DEBUG: "debug", logging.INFO: "info", logging.WARNING: "warn"},
    LoggerType.LOGRUS: {logging.DEBUG: "debug", logging.INFO: "info", logging.WARNING: "warning"},
}


def _moment(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).astimezone().isoformat()


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, "fields", {}))


class _StyledFormatter(logging.Formatter):
    def __init__(self, logger_type: LoggerType, log_type: LogType) -> None:
        super().__init__()
        self._logger_type = logger_type
        self._log_type = log_type

    def format(self, record: logging.LogRecord) -> str:
        level = _LEVEL_NAMES[self._logger_type].get(record.levelno, record.levelname.lower())
        message = record.getMessage()
        fields = _fields(record)
        moment = _moment(record)
        if self._log_type is LogType.JSON:
            if self._logger_type is LoggerType.LOGF:
                doc = {"level": level, "ts": moment, "msg": message, **fields}
            else:
                doc = {"level": level, "msg": message, "time": moment, **fields}
            return json.dumps(doc, separators=(",", ":"))
        extra = " ".join(f"{key}={value}" for key, value in fields.items())
        if self._logger_type is LoggerType.LOGF:
            return f"{moment} |{level.upper()}| {message} {extra}".rstrip()
        return f'time="{moment}" level={level} msg="{message}" {extra}'.rstrip()


class _StdoutHandler(logging.Handler):
    """Writes to whatever ``sys.stdout`` is at the time of the call."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            sys.stdout.write(self.format(record) + "\n")
        except Exception:  # noqa: BLE001 - logging's own error path
            self.handleError(record)


def _make_logger(logger_type: LoggerType, log_type: LogType) -> logging.Logger:
    logger = logging.getLogger(f"perfbench.restrelay.{logger_type.value}.{log_type.value}")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    if not logger.handlers:
        handler = _StdoutHandler()
        handler.setFormatter(_StyledFormatter(logger_type, log_type))
        logger.addHandler(handler)
    return logger


_LOGGERS = {
    (logger_type, log_type): _make_logger(logger_type, log_type)
    for logger_type in LoggerType
    for log_type in LogType
}


@dataclass
class LoggingAction:
    """Writes ``length`` records; with ``skip`` they are below the logger level."""

    skip: bool = False
    logger_type: LoggerType | None = None
    log_type: LogType | None = None
    length: int = 0

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read ``skip``, ``logger``, ``type`` and ``length``."""
        skip = params.get("skip")
        if skip is not None:
            try:
                self.skip = _parse_bool(skip)
            except ValueError as exc:
                raise ActionError(
                    f"failed conversion string to bool for skip parameter: {exc}"
                ) from exc

        logger = params.get("logger")
        if logger is None:
            raise ActionError("logger parameter is missing")
        try:
            self.logger_type = LoggerType(logger)
        except ValueError:
            raise ActionError(
                f"unknown logger, should be {LoggerType.LOGF.value} for logf "
                f"and {LoggerType.LOGRUS.value} for logrus"
            ) from None

        record_type = params.get("type")
        if record_type is None:
            raise ActionError("type parameter is missing")
        try:
            self.log_type = LogType(record_type)
        except ValueError:
            raise ActionError(
                f"unknown log type, should be {LogType.TEXT.value} for text "
                f"and {LogType.JSON.value} for json"
            ) from None

        length = params.get("length")
        if length is None:
            raise ActionError("length parameter is missing")
        try:
            log_length = _atoi(length)
        except ValueError as exc:
            raise ActionError(f"failed conversion string to int for length parameter: {exc}") from exc
        if log_length <= 0:
            raise ActionError("number of log rows should be greater than 0")
        self.length = log_length

    def perform(self) -> None:
        """Emit the records; skipped ones are filtered out by the logger level."""
        if self.logger_type is None:
            return
        log_type = LogType.JSON if self.log_type is LogType.JSON else LogType.TEXT
        logger = _LOGGERS[(self.logger_type, log_type)]
        level = logging.DEBUG if self.skip else logging.WARNING
        fields = {"timestamp": time.time_ns() % 1_000_000_000}
        for _ in range(self.length):
            logger.log(level, "log message", extra={"fields": fields})