"""The ``busyloop`` action: burn CPU for a number of iterations or a duration."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from .helpers import ActionError, _atoi, parse_duration

REFERENCE_ITERATIONS = 5_000_000


@dataclass
class _ReferenceRate:
    iterations_per_sec: float = 0.0


_reference = _ReferenceRate()


def _spin(iterations: int) -> None:
    foo = 2.0
    for _ in range(iterations):
        foo += math.sqrt(foo) + 1


def setup_reference_iterations(iterations: int = REFERENCE_ITERATIONS) -> float:
    """Measure how many loop iterations run per second and remember the rate."""
    start = time.perf_counter()
    _spin(iterations)
    took = max(time.perf_counter() - start, 1e-9)
    _reference.iterations_per_sec = iterations / took
    return _reference.iterations_per_sec


def reference_iterations_per_sec() -> float:
    """Return the measured rate, 0.0 before calibration."""
    return _reference.iterations_per_sec


@dataclass
class BusyLoopAction:
    """Spins either ``iterations`` times or for about ``duration`` whole seconds."""

    duration: timedelta = timedelta(0)
    iterations: int = 0

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read exactly one of ``iterations`` or ``duration``."""
        iterations = params.get("iterations")
        duration = params.get("duration")
        if iterations is not None and duration is not None:
            raise ActionError("both iterations and duration parameters are set")
        if iterations is None and duration is None:
            raise ActionError("either iterations or duration parameters should be set")

        if iterations is not None:
            try:
                self.iterations = _atoi(iterations)
            except ValueError as exc:
                raise ActionError(
                    f"failed conversion string to int in BusyLoopArguments with: {exc}"
                ) from exc
        else:
            try:
                self.duration = parse_duration(duration)
            except ActionError as exc:
                raise ActionError(
                    f"failed conversion string to duration in BusyLoopArguments with: {exc}"
                ) from exc

    def perform(self) -> int:
        """Run the loop and return the number of iterations done."""
        if self.iterations:
            iterations = self.iterations
        else:
            whole_seconds = int(self.duration.total_seconds())
            iterations = int(_reference.iterations_per_sec * whole_seconds)
        iterations = max(iterations, 0)
        _spin(iterations)
        return iterations