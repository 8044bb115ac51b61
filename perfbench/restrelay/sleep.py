"""The ``sleep`` action: pause the request for a given duration."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from .helpers import ActionError, parse_duration


@dataclass
class SleepAction:
    """Sleeps for ``duration``."""

    duration: timedelta = timedelta(0)

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``duration`` parameter."""
        raw = params.get("duration")
        if raw is None:
            raise ActionError("duration parameter is missing")
        try:
            self.duration = parse_duration(raw)
        except ActionError as exc:
            raise ActionError(f"failed conversion string to int in SleepArguments with: {exc}") from exc

    def perform(self) -> None:
        """Sleep; a negative duration returns at once."""
        time.sleep(max(0.0, self.duration.total_seconds()))