import json

from perfbench.benchmark.jsongen import (
    gen_random_json,
    generate_random_data,
    generate_random_schema,
)
from perfbench.benchmark.randomizer import RandomizerWorker

CHOICES = {"foo", "bar", "baz", "needle"}


def _shape(value):
    if isinstance(value, dict):
        return {k: _shape(v) for k, v in value.items()}
    return type(value).__name__


def test_gen_random_json_reuses_schema():
    rw = RandomizerWorker(1, 1)
    first = json.loads(gen_random_json(rw, 1))
    second = json.loads(gen_random_json(rw, 1))
    assert _shape(first) == _shape(second)


def test_gen_random_json_keys_are_fields():
    rw = RandomizerWorker(1, 1)
    text = gen_random_json(rw, 1)
    data = json.loads(text)
    assert text != ""
    assert all(key.startswith("field") for key in data)


def test_generate_random_schema_depth():
    rw = RandomizerWorker(1, 1)
    schema = generate_random_schema(rw, 2)
    assert len(schema) == 2


def test_generate_random_schema_zero_depth():
    assert generate_random_schema(RandomizerWorker(1, 1), 0) == {}


def test_generate_random_data_string_field():
    data = generate_random_data(RandomizerWorker(1, 1), {"field0": "string"})
    assert data["field0"] in CHOICES


def test_generate_random_data_integer_field():
    data = generate_random_data(RandomizerWorker(1, 1), {"field0": "integer"})
    assert isinstance(data["field0"], int)
    assert 0 <= data["field0"] < 100


def test_generate_random_data_nested():
    data = generate_random_data(RandomizerWorker(1, 1), {"field0": {"field1": "string"}})
    assert data["field0"]["field1"] in CHOICES


def test_generate_random_data_unknown_type_omitted():
    assert generate_random_data(RandomizerWorker(1, 1), {"x": "float"}) == {}