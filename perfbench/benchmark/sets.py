"""A minimal set type with an explicit add/remove interface."""

from __future__ import annotations

from typing import Hashable, Iterator


class Set:
    """An unordered collection of unique hashable elements."""

    def __init__(self) -> None:
        self._elements: set[Hashable] = set()

    def add(self, element: Hashable) -> None:
        """Add an element; adding an existing element has no effect."""
        self._elements.add(element)

    def remove(self, element: Hashable) -> None:
        """Remove an element; removing a missing element has no effect."""
        self._elements.discard(element)

    def __contains__(self, element: object) -> bool:
        return element in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._elements)