"""The benchmark runner: workers, loops, timing and scoring."""

from __future__ import annotations

import math
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from . import faker, jsongen
from .cli import CLI, CommonOpts
from .logger import Logger, LogLevel
from .randomizer import Randomizer, RandomizerWorker

try:
    import resource
except ImportError:  # pragma: no cover - not available on Windows
    resource = None  # type: ignore[assignment]

_FILENO_LIMIT = 1048576


@dataclass
class Score:
    """Result of one benchmark run."""

    workers: int = 0
    seconds: float = 0.0
    loops: int = 0
    rate: float = 0.0
    metric: str = ""

    def format_rate(self, n: int) -> str:
        """Format the rate to four significant figures (never fewer integer digits)."""
        if self.rate == 0.0:
            return "0"
        order = math.floor(math.log10(abs(self.rate))) + 1
        precision = max(0, 4 - int(order))
        return f"{self.rate:.{precision}f}"


def _default_print_score(score: Score) -> None:
    print(
        f"time: {score.seconds:f} sec; threads: {score.workers}; loops: {score.loops}; "
        f"rate: {score.rate:.2f} {score.metric};"
    )


class Benchmark:
    """Runs a user-supplied ``worker`` callable across worker threads.

    ``init`` runs once, then ``init_per_worker`` for each worker; ``worker``
    returns the number of loops it performed (0 stops that worker);
    ``finish_per_worker`` and ``finish`` tear down afterwards.
    """

    def __init__(self) -> None:
        self.add_opts: Callable[[], Any] = lambda: None
        self.init: Callable[[], None] = lambda: None
        self.init_per_worker: Callable[[int], None] = lambda worker_id: None
        self.pre_worker: Callable[[int], None] = lambda worker_id: None
        self.worker: Callable[[int], int] = lambda worker_id: 0
        self.finish_per_worker: Callable[[int], None] = lambda worker_id: None
        self.finish: Callable[[], None] = lambda: None
        self.pre_exit: Callable[[], None] = lambda: None
        self.metric: Callable[[], str] = lambda: "loops/sec"
        self.get_rate: Callable[[int, float], float] = lambda loops, seconds: loops / seconds
        self.print_score: Callable[[Score], None] = _default_print_score

        self.common_opts = CommonOpts()
        self.cli = CLI(sys.argv[0] if sys.argv else "benchmark", self.common_opts)
        self.test_opts: Any = None
        self.opts_initialized = False
        self.read_only = False
        self.logger = Logger(LogLevel.WARN)
        self.randomizer: Randomizer | None = None

        self.need_to_exit = False
        self.score = Score()

        self.cli_args: list[str] = []
        self.worker_data: list[Any] = []
        self.vault: Any = None

    def log(self, level: int, worker_id: int, message: str, *args: Any) -> None:
        """Log a line if the level is enabled."""
        self.logger.log(level, worker_id, message, *args)

    def logn(self, level: int, worker_id: int, message: str, *args: Any) -> None:
        """Log without a trailing newline if the level is enabled."""
        self.logger.logn(level, worker_id, message, *args)

    def init_opts(self, argv: Sequence[str] | None = None) -> None:
        """Parse options once and configure the logger."""
        if self.opts_initialized:
            return
        self.test_opts = self.add_opts()
        self.cli_args = self.cli.parse(argv)
        self.opts_initialized = True
        if self.common_opts.quiet:
            self.logger = Logger(LogLevel.ERROR)
        else:
            self.logger = Logger(self.common_opts.verbose + 1)
        self._adjust_fileno_ulimit()

    def set_usage(self, usage: str) -> None:
        """Set the usage text of the command line."""
        self.cli.set_usage(usage)

    def _adjust_fileno_ulimit(self) -> int:
        if resource is None:
            return 0
        try:
            resource.getrlimit(resource.RLIMIT_NOFILE)
        except OSError as exc:
            print("Error Getting Rlimit ", exc)
            return -1
        try:
            resource.setrlimit(resource.RLIMIT_NOFILE, (_FILENO_LIMIT, _FILENO_LIMIT))
        except (OSError, ValueError) as exc:
            print("Error Setting Rlimit ", exc)
            return -1
        try:
            limits = resource.getrlimit(resource.RLIMIT_NOFILE)
        except OSError as exc:
            print("Error Getting Rlimit ", exc)
            return -1
        self.log(LogLevel.DEBUG, 0, f"Changing file descriptor limits to: {limits}")
        return 0

    def _runner(self, worker_id: int, required_loops: int) -> int:
        opts = self.common_opts
        done = 0
        deadline = time.monotonic_ns() + opts.duration * 1_000_000_000
        while (done < required_loops) if opts.loops else (time.monotonic_ns() < deadline):
            self.pre_worker(worker_id)
            performed = self.worker(worker_id)
            if performed == 0:
                break
            done += performed
            if self.need_to_exit:
                break
            if opts.sleep > 0:
                time.sleep(opts.sleep / 1000)
        return done

    def run_once(self, print_score: bool) -> None:
        """Run all workers once and record the score."""
        opts = self.common_opts
        workers = opts.workers
        required = [0] * workers
        if opts.loops:
            base, rest = divmod(opts.loops, workers)
            required = [base + (1 if i < rest else 0) for i in range(workers)]

        loops = [0] * workers
        errors: list[BaseException] = []

        def target(worker_id: int) -> None:
            try:
                loops[worker_id] = self._runner(worker_id, required[worker_id])
            except BaseException as exc:  # noqa: BLE001 - re-raised in the caller
                errors.append(exc)

        threads = [threading.Thread(target=target, args=(i,)) for i in range(workers)]
        start = time.monotonic_ns()
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        end = time.monotonic_ns()

        if errors:
            raise errors[0]

        total = sum(loops)
        if total == 0:
            return

        self.score.seconds = (end - start) / 1e9
        self.score.rate = self.get_rate(total, self.score.seconds)
        self.score.metric = self.metric()
        self.score.workers = workers
        self.score.loops = total

        if print_score:
            self.print_score(self.score)

    def run(self, argv: Sequence[str] | None = None) -> None:
        """Parse options, run the test ``repeat`` times and print the score."""
        self.init_opts(argv)
        opts = self.common_opts
        if opts.workers < 0:
            opts.workers = 1

        def on_interrupt(signum: int, frame: Any) -> None:
            print(" Getting process interruption signal...")
            self.need_to_exit = True

        try:
            previous = signal.signal(signal.SIGINT, on_interrupt)
            installed = True
        except ValueError:
            previous, installed = None, False

        try:
            self._run(opts)
        finally:
            if installed:
                signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)

    def _run(self, opts: CommonOpts) -> None:
        self.randomizer = Randomizer(opts.rand_seed, opts.workers)
        self.init()
        self.worker_data = [None] * opts.workers

        self.log(LogLevel.DEBUG, 0, "per-worker initialization")
        for i in range(opts.workers):
            self.init_per_worker(i)
            if self.need_to_exit:
                break

        min_rate: float | None = None
        max_rate: float | None = None
        sum_rate = 0.0
        for r in range(opts.repeat):
            self.run_once(r != opts.repeat - 1)
            rate = self.score.rate
            min_rate = rate if min_rate is None else min(min_rate, rate)
            max_rate = rate if max_rate is None else max(max_rate, rate)
            sum_rate += rate
            if self.need_to_exit:
                break

        self.log(LogLevel.DEBUG, 0, "per-worker termination")
        for i in range(opts.workers):
            self.finish_per_worker(i)
        self.finish()

        self.print_score(self.score)
        if opts.repeat > 1:
            print(
                f"Avg rate: {sum_rate / opts.repeat:8.1f}; "
                f"Min rate: {min_rate or 0.0:8.1f}; Max rate: {max_rate or 0.0:8.1f}"
            )

    def exit(self, *args: Any) -> None:
        """Exit with 0 when called without arguments, else print the message and exit 127."""
        if not args:
            self.pre_exit()
            raise SystemExit(0)
        fmt = args[0]
        if not isinstance(fmt, str):
            print("First argument must be a format string.")
            self.pre_exit()
            raise SystemExit(127)
        print(fmt % tuple(args[1:]) if len(args) > 1 else fmt)
        self.pre_exit()
        raise SystemExit(127)

    def geomean(self, scores: Sequence[Score]) -> float:
        """Return the geometric mean of the scores' rates."""
        return math.exp(sum(math.log(s.rate) for s in scores) / len(scores))

    def _require_randomizer(self) -> Randomizer:
        if self.randomizer is None:
            self.randomizer = Randomizer(self.common_opts.rand_seed, max(self.common_opts.workers, 1))
        return self.randomizer

    def rand_string_bytes(
        self, worker_id: int, prefix: str, cardinality: int, maxsize: int, minsize: int, seeded: bool
    ) -> str:
        """Return a random string; see :func:`faker.rand_string_bytes`."""
        return faker.rand_string_bytes(
            self._require_randomizer(), worker_id, prefix, cardinality, maxsize, minsize, seeded
        )

    def gen_fake_value(
        self,
        worker_id: int,
        column_type: str,
        column_name: str,
        cardinality: int,
        maxsize: int,
        minsize: int,
        pre_generated: dict[str, Any] | None,
    ) -> Any:
        """Generate one fake value of ``column_type``."""
        return faker.gen_fake_value(
            self._require_randomizer(), worker_id, column_type, column_name,
            cardinality, maxsize, minsize, pre_generated,
        )

    def gen_fake_data(
        self, worker_id: int, col_confs: list[faker.DBFakeColumnConf], with_autoinc: bool
    ) -> tuple[list[str], list[Any]]:
        """Generate fake column names and values."""
        return faker.gen_fake_data(self._require_randomizer(), worker_id, col_confs, with_autoinc)

    def gen_fake_data_as_map(
        self, worker_id: int, col_confs: list[faker.DBFakeColumnConf], with_autoinc: bool
    ) -> dict[str, Any]:
        """Generate fake values keyed by column name."""
        return faker.gen_fake_data_as_map(self._require_randomizer(), worker_id, col_confs, with_autoinc)

    def gen_random_json(self, rw: RandomizerWorker, schema_cardinality: int) -> str:
        """Generate a random JSON document."""
        return jsongen.gen_random_json(rw, schema_cardinality)


def get_sysctl_value_int(key: str) -> int:
    """Return the integer value of a sysctl key."""
    try:
        result = subprocess.run(
            ["sysctl", "-n", key], capture_output=True, text=True, check=True
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise RuntimeError(f"error running sysctl: {exc}") from exc
    try:
        return int(result.stdout.strip())
    except ValueError as exc:
        raise ValueError(f"error parsing sysctl value: {exc}") from exc