"""The ``serial`` and ``parse`` actions: JSON encode and decode object trees."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any, Mapping

from .helpers import ActionError, _atoi


@dataclass
class Serializable:
    """One node of the object tree that is encoded to JSON."""

    string_field: str = "Serializable"
    boolean_field: bool = True
    integer_field: int = 12345
    float_field: float = 11.1234
    object_array_field: list[Serializable] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the node as a JSON-ready dict; leaves have a null array."""
        children = self.object_array_field
        return {
            "StringField": self.string_field,
            "BooleanField": self.boolean_field,
            "IntegerField": self.integer_field,
            "FloatField": self.float_field,
            "ObjectArrayField": None if children is None else [c.to_dict() for c in children],
        }


def _from_dict(data: Mapping[str, Any]) -> Serializable:
    children = data.get("ObjectArrayField")
    return Serializable(
        string_field=data.get("StringField", ""),
        boolean_field=data.get("BooleanField", False),
        integer_field=data.get("IntegerField", 0),
        float_field=data.get("FloatField", 0.0),
        object_array_field=None if children is None else [_from_dict(c) for c in children],
    )


def _encode(node: Serializable) -> bytes:
    return json.dumps(node.to_dict(), separators=(",", ":")).encode()


def _fill(node: Serializable, depth: int, width: int, current_depth: int) -> None:
    node.object_array_field = [Serializable() for _ in range(width)]
    if current_depth < depth - 1:
        for child in node.object_array_field:
            _fill(child, depth, width, current_depth + 1)


def build_serializable(depth: int, width: int) -> Serializable:
    """Build a tree of ``depth`` levels below the root, ``width`` children each."""
    root = Serializable()
    _fill(root, depth, width, 0)
    return root


class SerializationCache:
    """A never-cleared, thread-safe cache of trees and their encodings."""

    def __init__(self) -> None:
        self._serializable_lock = threading.Lock()
        self._serialized_lock = threading.Lock()
        self._serializable: dict[tuple[int, int], Serializable] = {}
        self._serialized: dict[tuple[int, int], bytes] = {}

    def get_serializable(self, depth: int, width: int) -> Serializable:
        """Return the cached tree, building it on first use."""
        with self._serializable_lock:
            key = (depth, width)
            tree = self._serializable.get(key)
            if tree is None:
                tree = build_serializable(depth, width)
                self._serializable[key] = tree
            return tree

    def get_serialized(self, depth: int, width: int) -> bytes:
        """Return the cached compact JSON encoding of the tree."""
        with self._serialized_lock:
            key = (depth, width)
            encoded = self._serialized.get(key)
            if encoded is None:
                encoded = _encode(self.get_serializable(depth, width))
                self._serialized[key] = encoded
            return encoded


cache = SerializationCache()


def _validate_shape(depth: int, width: int) -> None:
    if depth < 1 or width < 1:
        raise ActionError("TreeDepth and Tree width should be > 0")


def _required(params: Mapping[str, str]) -> tuple[str, str]:
    depth = params.get("depth")
    if depth is None:
        raise ActionError("depth parameter is missing")
    width = params.get("width")
    if width is None:
        raise ActionError("width parameter is missing")
    return depth, width


def _convert(text: str, arguments_name: str) -> int:
    try:
        return _atoi(text)
    except ValueError as exc:
        raise ActionError(f"failed conversion string to int in {arguments_name} with: {exc}") from exc


@dataclass
class SerializationAction:
    """Encodes the cached tree to JSON."""

    tree_depth: int = 0
    tree_width: int = 0

    def validate(self) -> None:
        """Check that depth and width are positive."""
        _validate_shape(self.tree_depth, self.tree_width)

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``depth`` and ``width`` parameters."""
        depth, width = _required(params)
        self.tree_depth = _convert(depth, "SerializationArguments")
        self.tree_width = _convert(width, "SerializationArguments")

    def perform(self) -> bytes:
        """Encode the tree and return the JSON bytes."""
        self.validate()
        return _encode(cache.get_serializable(self.tree_depth, self.tree_width))


@dataclass
class ParseAction:
    """Decodes the cached JSON encoding of the tree."""

    tree_depth: int = 0
    tree_width: int = 0

    def validate(self) -> None:
        """Check that depth and width are positive."""
        _validate_shape(self.tree_depth, self.tree_width)

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``depth`` and ``width`` parameters."""
        depth, width = _required(params)
        self.tree_depth = _convert(depth, "ParseArguments")
        self.tree_width = _convert(width, "ParseArguments")

    def perform(self) -> Serializable:
        """Decode the tree's JSON and return the rebuilt tree."""
        self.validate()
        encoded = cache.get_serialized(self.tree_depth, self.tree_width)
        try:
            return _from_dict(json.loads(encoded))
        except (ValueError, TypeError, AttributeError) as exc:
            raise ActionError(f"failed to perform parsing: {exc}") from exc


_EXACT_SIZES: dict[int, tuple[int, int]] = {
    100: (1, 1),
    1024: (1, 8),
    2048: (3, 2),
    4096: (2, 5),
    8192: (2, 8),
    16384: (6, 2),
    32768: (3, 6),
    65536: (3, 8),
    131072: (6, 3),
    262144: (4, 7),
    524288: (4, 8),
    1048576: (5, 6),
    2097152: (6, 5),
    4194304: (5, 8),
    8388608: (5, 9),
    16777216: (6, 7),
    33554432: (6, 8),
    67108864: (6, 9),
    134217728: (7, 7),
    268435456: (7, 8),
    536870912: (7, 9),
    1073741824: (7, 9),
}

# (depth, width) -> encoded size in bytes
_SIZE_TABLE: dict[tuple[int, int], int] = {
    (1, 1): 230, (1, 2): 347, (1, 3): 464, (1, 4): 581,
    (1, 5): 698, (1, 6): 815, (1, 7): 932, (1, 8): 1049, (1, 9): 1166,
    (2, 1): 344, (2, 2): 809, (2, 3): 1508, (2, 4): 2441,
    (2, 5): 3608, (2, 6): 5009, (2, 7): 6644, (2, 8): 8513, (2, 9): 10616,
    (3, 1): 458, (3, 2): 1733, (3, 3): 4640, (3, 4): 9881,
    (3, 5): 18158, (3, 6): 30173, (3, 7): 46628, (3, 8): 68225, (3, 9): 95666,
    (4, 1): 572, (4, 2): 3581, (4, 3): 14036, (4, 4): 39641,
    (4, 5): 90908, (4, 6): 181157, (4, 7): 326516, (4, 8): 545921, (4, 9): 861116,
    (5, 1): 686, (5, 2): 7277, (5, 3): 42224, (5, 4): 158681,
    (5, 5): 454658, (5, 6): 1087061, (5, 7): 2285732, (5, 8): 4367489, (5, 9): 7750166,
    (6, 1): 800, (6, 2): 14669, (6, 3): 126788, (6, 4): 634841,
    (6, 5): 2273408, (6, 6): 6522485, (6, 7): 16000244, (6, 8): 34940033, (6, 9): 69751616,
    (7, 1): 914, (7, 2): 29453, (7, 3): 380480, (7, 4): 2539481,
    (7, 5): 11367158, (7, 6): 39135029, (7, 7): 112001828, (7, 8): 279520385, (7, 9): 627764666,
}


def get_closest_depth_and_width(size: int) -> tuple[int, int]:
    """Return the (depth, width) whose encoded tree size is nearest to ``size``.

    Only a fixed set of shapes is used so that their encodings stay cached.
    """
    exact = _EXACT_SIZES.get(size)
    if exact is not None:
        return exact
    closest = (0, 0)
    min_diff = 2**31 - 1
    for shape, encoded_size in _SIZE_TABLE.items():
        diff = abs(size - encoded_size)
        if diff < min_diff:
            min_diff = diff
            closest = shape
    return closest