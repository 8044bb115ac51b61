"""Fake column values for database benchmarks."""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from .jsongen import gen_random_json
from .randomizer import Randomizer, RandomizerWorker

LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class FakeValueError(ValueError):
    """Raised for a column type that no generator supports."""


@dataclass
class DBFakeColumnConf:
    """How to fill one column with fake data."""

    column_name: str
    column_type: str
    cardinality: int = 0
    max_size: int = 0
    min_size: int = 0


class _CardinalityCache:
    """Fixed pools of strings, one pool per (prefix, cardinality, sizes)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entities: dict[str, list[str]] = {}

    def pick(self, index: int, prefix: str, cardinality: int, maxsize: int, minsize: int) -> str:
        key = f"{prefix}-{cardinality}-{maxsize}-{minsize}"
        with self._lock:
            pool = self._entities.get(key)
            if pool is None:
                rng = random.Random(cardinality + maxsize - minsize)
                span = maxsize - minsize - len(prefix)
                pool = []
                for _ in range(cardinality):
                    length = rng.randrange(span) + minsize
                    pool.append(prefix + "".join(rng.choice(LETTERS) for _ in range(length)))
                self._entities[key] = pool
        return pool[index]


_cardinality_cache = _CardinalityCache()


def rand_string_bytes(
    randomizer: Randomizer,
    worker_id: int,
    prefix: str,
    cardinality: int,
    maxsize: int,
    minsize: int,
    seeded: bool,
) -> str:
    """Return a random letter string, or one of ``cardinality`` cached strings."""
    if maxsize == minsize:
        return ""
    rw = randomizer.get_worker(worker_id)
    if cardinality != 0:
        return _cardinality_cache.pick(rw.intn(cardinality), prefix, cardinality, maxsize, minsize)
    rng = rw.seeded if seeded else rw.unique
    length = rng.randrange(maxsize - minsize) + minsize
    return "".join(rng.choice(LETTERS) for _ in range(length))


def _now() -> datetime:
    return datetime.now().astimezone()


def _time_string(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S.%f %z %Z")


def _random_or_now(rw: RandomizerWorker, cardinality: int) -> datetime:
    return _now() if cardinality == 0 else rw.rand_time(cardinality)


def gen_fake_value(
    randomizer: Randomizer,
    worker_id: int,
    column_type: str,
    column_name: str,
    cardinality: int,
    maxsize: int,
    minsize: int,
    pre_generated: dict[str, Any] | None,
) -> Any:
    """Generate one value of the given column type."""
    rw = randomizer.get_worker(worker_id)

    if column_type in ("autoinc", "now_ns"):
        return time.time_ns()
    if column_type == "now_sec":
        return time.time_ns() // 1_000_000_000
    if column_type == "now_ms":
        return time.time_ns() // 1_000_000
    if column_type == "now_mcs":
        return time.time_ns() // 1_000
    if column_type == "now":
        return _now()
    if column_type == "int":
        return rw.intn(cardinality)
    if column_type == "bigint":
        return random.getrandbits(63)
    if column_type in ("string", "rstring"):
        return rand_string_bytes(
            randomizer, worker_id, column_name + "_", cardinality, maxsize, minsize,
            column_type == "string",
        )
    if column_type == "uuid":
        return rw.uuid() if cardinality == 0 else rw.uuidn(cardinality)
    if column_type == "time":
        return _random_or_now(rw, cardinality)
    if column_type == "time_string":
        return _time_string(_random_or_now(rw, cardinality))
    if column_type == "time_ns":
        return int(_random_or_now(rw, cardinality).timestamp())
    if column_type == "timestamp":
        return _random_or_now(rw, cardinality).astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)
    if column_type in ("byte", "rbyte"):
        text = rand_string_bytes(
            randomizer, worker_id, "", cardinality, maxsize, minsize, column_type == "byte"
        )
        return text.encode()
    if column_type == "json":
        return gen_random_json(rw, 1024)
    if column_type == "bool":
        return rw.intn(2) == 1
    if column_type == "blob":
        return rw.read(rw.intn(maxsize - minsize) + minsize)

    for plugin in randomizer.plugins.values():
        ok, value = plugin.gen_fake_value(column_type, rw, cardinality, pre_generated)
        if ok:
            return value
    raise FakeValueError(f"generateParameter: unsupported parameter '{column_type}'")


def _pre_generate(
    randomizer: Randomizer, rw: RandomizerWorker, col_confs: Iterable[DBFakeColumnConf]
) -> dict[str, Any] | None:
    pre_generated: dict[str, Any] | None = None
    confs = list(col_confs)
    for plugin in randomizer.plugins.values():
        for conf in confs:
            exists, value = plugin.gen_common_fake_value(conf.column_type, rw, conf.cardinality)
            if exists:
                if pre_generated is None:
                    pre_generated = {}
                pre_generated[conf.column_type] = value
    return pre_generated


def _generate_rows(
    randomizer: Randomizer,
    worker_id: int,
    col_confs: list[DBFakeColumnConf],
    with_autoinc: bool,
) -> Iterable[tuple[str, Any]]:
    rw = randomizer.get_worker(worker_id)
    pre_generated = _pre_generate(randomizer, rw, col_confs)
    for conf in col_confs:
        if conf.column_type == "autoinc" and not with_autoinc:
            continue
        yield conf.column_name, gen_fake_value(
            randomizer, worker_id, conf.column_type, conf.column_name,
            conf.cardinality, conf.max_size, conf.min_size, pre_generated,
        )


def gen_fake_data(
    randomizer: Randomizer,
    worker_id: int,
    col_confs: list[DBFakeColumnConf],
    with_autoinc: bool,
) -> tuple[list[str], list[Any]]:
    """Return parallel lists of column names and generated values."""
    columns: list[str] = []
    values: list[Any] = []
    for name, value in _generate_rows(randomizer, worker_id, col_confs, with_autoinc):
        columns.append(name)
        values.append(value)
    return columns, values


def gen_fake_data_as_map(
    randomizer: Randomizer,
    worker_id: int,
    col_confs: list[DBFakeColumnConf],
    with_autoinc: bool,
) -> dict[str, Any]:
    """Return generated values keyed by column name."""
    return dict(_generate_rows(randomizer, worker_id, col_confs, with_autoinc))