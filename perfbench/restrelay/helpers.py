"""Shared pieces of the relay server's request logic: timestamps, parsing helpers."""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping, Sequence


class ActionError(ValueError):
    """Raised when an action cannot be parsed or performed."""


@dataclass
class RequestWrapper:
    """The parts of an incoming request that actions need.

    ``args`` maps a query parameter name to all of its values.
    """

    args: Mapping[str, Sequence[str]] = field(default_factory=dict)
    uri: str = ""
    connection_header: str = ""


class TimestampBuilder:
    """Collects timestamps of one node and the marshalled results of the next nodes."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.timestamps: list[int] = []
        self.marshalled: list[str] = []

    def add_timestamp(self) -> None:
        """Record the current time in nanoseconds."""
        self.timestamps.append(time.time_ns())

    def build_timestamps(self) -> str:
        """Return the timestamps as ``[a, b, ...]``, or an empty string if there are none."""
        if not self.timestamps:
            return ""
        return "[" + ", ".join(str(ts) for ts in self.timestamps) + "]"

    def _build_marshalled(self) -> str:
        return "[" + ", ".join(self.marshalled) + "]"

    def add_marshalled_timestamps(self, marshalled: str) -> None:
        """Append the marshalled timestamps returned by a downstream node."""
        self.marshalled.append(marshalled)

    def marshal(self) -> str:
        """Return the JSON-like document describing this node and its children."""
        return (
            f'{{"name": "{self.name}", "timestamps": {self.build_timestamps()}, '
            f'"marshalled": {self._build_marshalled()}}}'
        )


class ThreadSafeCounter:
    """A counter that can be incremented from several threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def inc(self) -> int:
        """Increment the counter and return the new value."""
        with self._lock:
            self._value += 1
            return self._value


_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str) -> int:
    """Parse a signed base-10 64-bit integer strictly, without spaces or underscores."""
    if not _INT_RE.fullmatch(text):
        raise ValueError(f'strconv.Atoi: parsing "{text}": invalid syntax')
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f'strconv.Atoi: parsing "{text}": value out of range')
    return value


_FUNCTION_RE = re.compile(r"(\w+)(?:\(([^)]*)\))?", re.ASCII)


def parse_function_string(text: str) -> tuple[str, dict[str, str]]:
    """Split ``name(key=value,...)`` into the name and its arguments."""
    match = _FUNCTION_RE.fullmatch(text)
    if match is None:
        raise ActionError("invalid input format")
    function, args_string = match.group(1), match.group(2)
    arguments: dict[str, str] = {}
    if args_string:
        for pair in args_string.split(","):
            key_value = pair.split("=")
            if len(key_value) != 2:
                raise ActionError("invalid argument format")
            key, value = key_value
            arguments[key] = value
    return function, arguments


_SIZE_RE = re.compile(r"([0-9.]+)([KMGTP]?B)")
_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
    "PB": 1024**5,
}


def parse_file_size(size_str: str) -> int:
    """Parse sizes like ``10B``, ``1.5KB`` or ``2MB`` into a number of bytes."""
    match = _SIZE_RE.fullmatch(size_str)
    if match is None:
        raise ActionError("invalid size format")
    value_str, unit = match.groups()
    try:
        value = float(value_str)
    except ValueError:
        raise ActionError(f'strconv.ParseFloat: parsing "{value_str}": invalid syntax') from None
    multiplier = _SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ActionError("unknown unit")
    return int(value * multiplier)


_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_NUMBER_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?")
_UNIT_RE = re.compile(r"[^0-9.]*")


def parse_duration(text: str) -> timedelta:
    """Parse durations like ``300ms``, ``-1.5h`` or ``2h45m``."""
    invalid = ActionError(f'time: invalid duration "{text}"')
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise invalid

    total = 0
    while s:
        number = _NUMBER_RE.match(s)
        int_part, frac_part = number.group(1), number.group(2) or ""
        if not int_part and not frac_part:
            raise invalid
        s = s[number.end():]
        unit = _UNIT_RE.match(s).group(0)
        if not unit:
            raise ActionError(f'time: missing unit in duration "{text}"')
        scale = _DURATION_UNITS.get(unit)
        if scale is None:
            raise ActionError(f'time: unknown unit "{unit}" in duration "{text}"')
        s = s[len(unit):]
        total += int(int_part or "0") * scale
        if frac_part:
            total += int(frac_part) * scale // 10 ** len(frac_part)
        if total > 2**63:
            raise invalid

    if total > _INT_MAX and not negative:
        raise invalid
    if negative:
        total = -total
    seconds, nanos = divmod(total, 1_000_000_000)
    return timedelta(seconds=seconds, microseconds=nanos / 1000)