"""Random JSON documents built from a cache of random schemas."""

from __future__ import annotations

import json
import threading
from typing import Any, Union

from .randomizer import RandomizerWorker

Schema = dict[str, Union["Schema", str]]

_STRING_CHOICES = ("foo", "bar", "baz", "needle")

_schemas: dict[int, Schema] = {}
_lock = threading.Lock()


def gen_random_json(rw: RandomizerWorker, schema_cardinality: int) -> str:
    """Return an indented JSON document following one of the cached schemas."""
    schema_id = rw.intn(schema_cardinality)
    with _lock:
        schema = _schemas.get(schema_id)
        if schema is None:
            schema = generate_random_schema(rw, rw.intn(6))
            _schemas[schema_id] = schema
    data = generate_random_data(rw, schema)
    return json.dumps(data, indent=2, sort_keys=True)


def generate_random_schema(rw: RandomizerWorker, depth: int) -> Schema:
    """Build a schema with ``depth`` fields, some of them nested objects."""
    schema: Schema = {}
    for i in range(depth):
        key = f"field{i}"
        if rw.intn(2) == 0 and i < depth - 1:
            schema[key] = generate_random_schema(rw, depth - 1)
        elif rw.intn(2) == 0:
            schema[key] = "string"
        else:
            schema[key] = "integer"
    return schema


def generate_random_data(rw: RandomizerWorker, schema: Schema) -> dict[str, Any]:
    """Fill a schema with random values; unknown field types are left out."""
    data: dict[str, Any] = {}
    for key, value in schema.items():
        if isinstance(value, dict):
            data[key] = generate_random_data(rw, value)
        elif value == "string":
            data[key] = _STRING_CHOICES[rw.intn(len(_STRING_CHOICES))]
        elif value == "integer":
            data[key] = rw.intn(100)
    return data