"""The ``allocate`` action: allocate roughly ``size`` bytes of small records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .helpers import ActionError, parse_file_size

# One record is counted as an integer plus a string reference.
_RECORD_SIZE = 24


@dataclass
class _AllocationRecord:
    random_field_int: int
    random_field_string: str


@dataclass
class AllocationAction:
    """Allocates ``size // 24`` records."""

    size: int = 0

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``size`` parameter, e.g. ``10KB``."""
        raw = params.get("size")
        if raw is None:
            raise ActionError("size parameter is missing")
        try:
            self.size = parse_file_size(raw)
        except ActionError as exc:
            raise ActionError(
                f"failed conversion string to int in AllocationArguments with: {exc}"
            ) from exc

    def perform(self) -> int:
        """Allocate the records and return how many were made."""
        records = []
        for _ in range(self.size // _RECORD_SIZE):
            records.append(_AllocationRecord(2, "test string"))
        return len(records)