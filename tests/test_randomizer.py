from datetime import datetime, timedelta

import pytest

from perfbench.benchmark.randomizer import (
    Randomizer,
    RandomizerError,
    RandomizerPlugin,
    RandomizerWorker,
)


def test_intn_zero_returns_zero():
    assert RandomizerWorker(1, 1).intn(0) == 0


def test_intn_in_range():
    rw = RandomizerWorker(1, 1)
    values = [rw.intn(10) for _ in range(200)]
    assert all(0 <= v < 10 for v in values)


def test_seeded_is_deterministic():
    a = RandomizerWorker(5, 2)
    b = RandomizerWorker(5, 2)
    assert [a.intn(1000) for _ in range(20)] == [b.intn(1000) for _ in range(20)]


def test_fixed_stream_is_same_for_any_seed():
    a = RandomizerWorker(5, 2)
    b = RandomizerWorker(9, 0)
    assert a.fixed.random() == b.fixed.random()


def test_uintn64():
    rw = RandomizerWorker(1, 0)
    assert rw.uintn64(0) == 0
    assert all(rw.uintn64(50) < 50 for _ in range(100))


def test_uuid_is_version4():
    u = RandomizerWorker(1, 0).uuid()
    assert u.version == 4


def test_uuidn_prefix():
    rw = RandomizerWorker(1, 0)
    assert str(rw.uuidn(100)).startswith("01234567-89ab-cdef-0123-0000")
    assert str(rw.uuidn(1)) == "01234567-89ab-cdef-0123-000000000000"


def test_uuidn_invalid_limit():
    with pytest.raises(ValueError):
        RandomizerWorker(1, 0).uuidn(0)


def test_rand_time_bounds():
    rw = RandomizerWorker(1, 0)
    before = datetime.now().astimezone()
    t = rw.rand_time(10)
    after = datetime.now().astimezone()
    assert before - timedelta(days=10) <= t
    assert t <= after - timedelta(days=10) + timedelta(days=90)


def test_read_length_and_determinism():
    a = RandomizerWorker(3, 0).read(16)
    b = RandomizerWorker(3, 0).read(16)
    assert len(a) == 16
    assert a == b


def test_intn_exp_range():
    rw = RandomizerWorker(1, 0)
    assert all(0 <= rw.intn_exp(100) < 100 for _ in range(200))


def test_randomizer_workers_inclusive_and_minus_one():
    rz = Randomizer(1, 2)
    assert rz.get_worker(2) is rz.get_worker(2)
    assert rz.get_worker(-1) is not rz.get_worker(0)


def test_randomizer_unknown_worker():
    rz = Randomizer(1, 2)
    with pytest.raises(RandomizerError):
        rz.get_worker(3)


def test_register_plugin():
    class Plugin(RandomizerPlugin):
        def gen_common_fake_value(self, column_type, rw, cardinality):
            return False, None

        def gen_fake_value(self, column_type, rw, cardinality, pre_generated):
            return False, None

    rz = Randomizer(1, 1)
    plugin = Plugin()
    rz.register_plugin("p", plugin)
    assert rz.plugins["p"] is plugin