import threading

import pytest

from perfbench.benchmark.core import Benchmark, Score, get_sysctl_value_int
from perfbench.benchmark.faker import DBFakeColumnConf
from perfbench.benchmark.randomizer import Randomizer


def test_new_benchmark_defaults():
    b = Benchmark()
    assert b.opts_initialized is False
    assert b.metric() == "loops/sec"
    assert b.worker(0) == 0


def test_run_once():
    b = Benchmark()
    b.common_opts.workers = 1
    b.common_opts.loops = 1
    b.worker = lambda worker_id: 1
    b.run_once(False)
    assert b.score.workers == 1
    assert b.score.loops == 1


def test_run_once_splits_loops_between_workers():
    b = Benchmark()
    b.common_opts.workers = 2
    b.common_opts.loops = 5
    calls = {0: 0, 1: 0}
    lock = threading.Lock()

    def worker(worker_id):
        with lock:
            calls[worker_id] += 1
        return 1

    b.worker = worker
    b.run_once(False)
    assert calls == {0: 3, 1: 2}
    assert b.score.loops == 5


def test_run_once_without_loops_keeps_score():
    b = Benchmark()
    b.common_opts.workers = 1
    b.common_opts.loops = 1
    b.run_once(False)
    assert b.score.loops == 0
    assert b.score.rate == 0.0


def test_run_once_propagates_worker_errors():
    b = Benchmark()
    b.common_opts.workers = 1
    b.common_opts.loops = 1

    def worker(worker_id):
        raise KeyError("boom")

    b.worker = worker
    with pytest.raises(KeyError):
        b.run_once(False)


def test_format_rate_with_zero_rate():
    assert Score(rate=0.0).format_rate(4) == "0"


def test_format_rate_with_non_zero_rate():
    assert Score(rate=1234.5678).format_rate(4) == "1235"


def test_format_rate_with_large_rate():
    assert Score(rate=12345678.12345678).format_rate(4) == "12345678"


def test_init_opts():
    b = Benchmark()
    b.init_opts(["--duration=1", "--loops=1", "-c=1"])
    assert b.opts_initialized is True
    assert b.common_opts.workers == 1
    assert b.common_opts.duration == 1
    assert b.logger.log_level == 1


def test_init_opts_quiet_sets_error_level():
    b = Benchmark()
    b.init_opts(["-Q"])
    assert b.logger.log_level == 0


def test_geomean():
    b = Benchmark()
    assert b.geomean([Score(rate=2.0), Score(rate=8.0)]) == pytest.approx(4.0)


def test_run(capsys):
    b = Benchmark()
    b.worker = lambda worker_id: 1
    b.run(["--duration=1", "--loops=1", "-c=1"])
    assert b.score.workers == 1
    assert b.score.loops == 1
    assert b.score.rate > 0
    assert b.score.seconds < 5
    assert "threads: 1; loops: 1;" in capsys.readouterr().out


def test_run_repeat_prints_average(capsys):
    b = Benchmark()
    b.worker = lambda worker_id: 1
    b.run(["--loops=2", "-c=1", "--repeat=2"])
    out = capsys.readouterr().out
    assert "Avg rate:" in out
    assert "Max rate:" in out


def test_exit_without_arguments():
    b = Benchmark()
    called = []
    b.pre_exit = lambda: called.append(True)
    with pytest.raises(SystemExit) as info:
        b.exit()
    assert info.value.code == 0
    assert called == [True]


def test_exit_with_message(capsys):
    b = Benchmark()
    with pytest.raises(SystemExit) as info:
        b.exit("bad value %d", 5)
    assert info.value.code == 127
    assert capsys.readouterr().out == "bad value 5\n"


def test_exit_with_non_string(capsys):
    b = Benchmark()
    with pytest.raises(SystemExit) as info:
        b.exit(42)
    assert info.value.code == 127
    assert "First argument must be a format string." in capsys.readouterr().out


def test_rand_string_bytes_with_cardinality():
    b = Benchmark()
    b.randomizer = Randomizer(1, 1)
    text = b.rand_string_bytes(1, "test_", 10, 20, 5, True)
    assert 5 <= len(text) <= 20


def test_rand_string_bytes_without_cardinality():
    b = Benchmark()
    b.randomizer = Randomizer(1, 1)
    text = b.rand_string_bytes(1, "test_", 0, 20, 5, True)
    assert 5 <= len(text) <= 20


def test_gen_fake_data_with_autoinc():
    b = Benchmark()
    b.randomizer = Randomizer(1, 1)
    cols, vals = b.gen_fake_data(1, [DBFakeColumnConf("test", "autoinc", 10, 20, 5)], True)
    assert cols == ["test"]
    assert len(vals) == 1


def test_gen_fake_data_as_map_without_autoinc():
    b = Benchmark()
    b.randomizer = Randomizer(1, 1)
    data = b.gen_fake_data_as_map(1, [DBFakeColumnConf("test", "autoinc", 10, 20, 5)], False)
    assert data == {}


def test_gen_fake_value_bool():
    b = Benchmark()
    b.randomizer = Randomizer(1, 1)
    assert b.gen_fake_value(1, "bool", "flag", 0, 0, 0, None) in (True, False)


def test_sysctl_unknown_key_raises():
    with pytest.raises(RuntimeError, match="error running sysctl"):
        get_sysctl_value_int("no.such.key.for.perfbench")