"""Command-line parsing for benchmarks: common options plus user groups.

Option groups are dataclass instances. Each field may carry metadata with
the keys ``short``, ``long``, ``help``, ``required`` and ``count``; parsed
values are written back onto the instance.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Sequence


class CliError(ValueError):
    """Raised for invalid command-line arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:  # type: ignore[override]
        raise CliError(message)


@dataclass
class CommonOpts:
    """Options shared by every benchmark."""

    verbose: int = field(
        default=0,
        metadata={
            "short": "v",
            "long": "verbose",
            "count": True,
            "help": "Show verbose debug information (-v - info, -vv - debug)",
        },
    )
    workers: int = field(
        default=0,
        metadata={
            "short": "c",
            "long": "concurrency",
            "help": "sets number of workers that run the testing function",
        },
    )
    loops: int = field(
        default=0,
        metadata={
            "short": "l",
            "long": "loops",
            "help": "sets TOTAL (not per worker) number of iterations of the testing "
            "function (takes priority over duration)",
        },
    )
    duration: int = field(
        default=5,
        metadata={
            "short": "d",
            "long": "duration",
            "help": "sets duration (in seconds) of work time for every loop",
        },
    )
    sleep: int = field(
        default=0,
        metadata={"short": "S", "long": "sleep", "help": "sleep given amount of msec between requests"},
    )
    repeat: int = field(
        default=1,
        metadata={"short": "r", "long": "repeat", "help": "repeat the test given amount of times"},
    )
    quiet: bool = field(
        default=False,
        metadata={
            "short": "Q",
            "long": "quiet",
            "help": "be quiet and print as little information as possible",
        },
    )
    rand_seed: int = field(
        default=1,
        metadata={"short": "s", "long": "randseed", "help": "Seed used for random number generation"},
    )


_TYPE_NAMES: dict[str, type] = {"int": int, "bool": bool, "float": float, "str": str}


def _field_kind(f: dataclasses.Field, default: Any) -> type:
    kind = f.type
    if isinstance(kind, str):
        kind = _TYPE_NAMES.get(kind.strip())
    if kind in (int, bool, float, str):
        return kind
    if isinstance(default, bool):
        return bool
    if isinstance(default, (int, float)):
        return type(default)
    return str


def _add_group(parser: argparse.ArgumentParser, index: int, title: str, description: str, options: Any) -> None:
    if not dataclasses.is_dataclass(options) or isinstance(options, type):
        raise TypeError("option groups must be dataclass instances")
    group = parser.add_argument_group(title or None, description or None)
    for f in dataclasses.fields(options):
        meta = f.metadata
        names = [f"--{meta.get('long', f.name.replace('_', '-'))}"]
        if meta.get("short"):
            names.insert(0, f"-{meta['short']}")
        default = getattr(options, f.name)
        kwargs: dict[str, Any] = {
            "dest": f"{index}.{f.name}",
            "default": default,
            "help": meta.get("help"),
        }
        kind = _field_kind(f, default)
        if meta.get("count"):
            kwargs["action"] = "count"
        elif kind is bool:
            kwargs["action"] = "store_true"
        else:
            kwargs["type"] = kind if kind in (int, float) else str
            if meta.get("required"):
                kwargs["required"] = True
        group.add_argument(*names, **kwargs)


class CLI:
    """Collects option groups and parses the command line into them."""

    def __init__(self, application_name: str, common_opts: CommonOpts) -> None:
        self.application_name = application_name
        self.common_opts = common_opts
        self.usage = ""
        self._groups: list[tuple[str, str, Any]] = []

    def set_application_name(self, name: str) -> None:
        """Set the program name shown in help output."""
        self.application_name = name

    def add_flag_group(self, group_name: str, group_description: str, options: Any) -> None:
        """Add the fields of a dataclass instance as a group of flags."""
        if not dataclasses.is_dataclass(options) or isinstance(options, type):
            raise TypeError("option groups must be dataclass instances")
        self._groups.append((group_name, group_description, options))

    def set_usage(self, usage: str) -> None:
        """Set the usage text."""
        self.usage = usage

    def set_description(self, description: str) -> None:
        """Append a description line to the usage text."""
        self.usage = self.usage + "\n" + description

    def _check_common_opts(self) -> None:
        opts = self.common_opts
        if opts.duration < 1:
            raise CliError("duration should be > 0")
        if opts.loops < 0:
            raise CliError("loops should be >= 0")
        if opts.workers < 1:
            opts.workers = 1

    def parse(self, argv: Sequence[str] | None = None) -> list[str]:
        """Parse ``argv`` (default: sys.argv[1:]) and return the positional arguments."""
        usage = f"%(prog)s [OPTIONS] {self.usage.replace('%', '%%')}" if self.usage else None
        parser = _Parser(prog=self.application_name, usage=usage, conflict_handler="resolve")
        groups = [
            ("Common options", "Common flags for every test", self.common_opts),
            *self._groups,
        ]
        for index, (title, description, options) in enumerate(groups):
            _add_group(parser, index, title, description, options)
        parser.add_argument("rest", nargs="*", help=argparse.SUPPRESS)

        args = list(sys.argv[1:] if argv is None else argv)
        namespace = parser.parse_intermixed_args(args)

        for index, (_, _, options) in enumerate(groups):
            for f in dataclasses.fields(options):
                dest = f"{index}.{f.name}"
                setattr(options, f.name, getattr(namespace, dest, getattr(options, f.name)))

        self._check_common_opts()
        return list(namespace.rest)