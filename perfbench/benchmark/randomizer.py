"""Per-worker random number sources and the randomizer plugin interface."""

from __future__ import annotations

import random
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any


class RandomizerError(LookupError):
    """Raised when a worker's random source has not been created."""


class RandomizerWorker:
    """Random streams for one worker.

    ``fixed`` always yields the same sequence, ``seeded`` depends on the seed
    and the worker id, ``unique`` differs on every run.
    """

    def __init__(self, seed: int, worker_id: int) -> None:
        if seed == 0:
            seed = time.time_ns()
        else:
            seed += 1 + worker_id
        self.fixed = random.Random(0)
        self.seeded = random.Random(seed)
        self.unique = random.Random()

    def intn(self, max_value: int) -> int:
        """Return a seeded value in [0, max_value), or 0 when max_value is 0."""
        if max_value == 0:
            return 0
        return self.seeded.randrange(max_value)

    def uintn64(self, max_value: int) -> int:
        """Return a seeded unsigned 64-bit value modulo max_value."""
        if max_value == 0:
            return 0
        return self.seeded.getrandbits(64) % max_value

    def uuid(self) -> uuid.UUID:
        """Return a random version 4 UUID from the unique stream."""
        r = self.unique
        g = [r.randrange(0xFFFF) for _ in range(8)]
        text = (
            f"{g[0]:04x}{g[1]:04x}-{g[2]:04x}-{g[3] & 0x0FFF | 0x4000:04x}-"
            f"{g[4] & 0x3FFF | 0x8000:04x}-{g[5]:04x}{g[6]:04x}{g[7]:04x}"
        )
        return uuid.UUID(text)

    def uuidn(self, limit: int) -> uuid.UUID:
        """Return one of ``limit`` fixed-prefix UUIDs."""
        return uuid.UUID(f"01234567-89ab-cdef-0123-0000{self.unique.randrange(limit):08x}")

    def rand_time(self, days_ago_limit: int) -> datetime:
        """Return a time starting ``days_ago_limit`` days ago plus a random offset."""
        start = datetime.now().astimezone() - timedelta(days=days_ago_limit)
        offset = timedelta(days=self.intn(90), hours=self.intn(24), minutes=self.intn(60))
        return start + offset

    def read(self, size: int) -> bytes:
        """Return ``size`` seeded random bytes."""
        return self.seeded.randbytes(size)

    def intn_exp(self, max_value: int) -> int:
        """Return a value in [0, max_value) skewed towards small numbers."""
        return self.intn(self.intn(max_value) + 1)


class RandomizerPlugin(ABC):
    """Extension point for custom fake column types."""

    @abstractmethod
    def gen_common_fake_value(
        self, column_type: str, rw: RandomizerWorker, cardinality: int
    ) -> tuple[bool, Any]:
        """Return (True, value) for a value shared by a whole row."""

    @abstractmethod
    def gen_fake_value(
        self,
        column_type: str,
        rw: RandomizerWorker,
        cardinality: int,
        pre_generated: dict[str, Any] | None,
    ) -> tuple[bool, Any]:
        """Return (True, value) when the plugin handles ``column_type``."""


class Randomizer:
    """Holds one RandomizerWorker per worker id, plus id -1."""

    def __init__(self, seed: int, workers: int) -> None:
        self._workers: dict[int, RandomizerWorker] = {
            w: RandomizerWorker(seed, w) for w in range(workers + 1)
        }
        self._workers[-1] = RandomizerWorker(seed, -1)
        self.plugins: dict[str, RandomizerPlugin] = {}

    def get_worker(self, worker_id: int) -> RandomizerWorker:
        """Return the worker's random source."""
        try:
            return self._workers[worker_id]
        except KeyError:
            raise RandomizerError(
                f"random generator for worker {worker_id} has not been initialized"
            ) from None

    def register_plugin(self, name: str, plugin: RandomizerPlugin) -> None:
        """Register or replace a plugin under ``name``."""
        self.plugins[name] = plugin