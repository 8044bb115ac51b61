# perfbench

`perfbench` has two parts:

- `perfbench.benchmark` is a small library for writing concurrent
  benchmarks. It parses the common command-line options (concurrency, loops,
  duration, sleep, repeat, quiet, random seed), runs a worker function across
  several threads and reports the score. It also has seeded random and
  fake-data generators for database-style columns and random JSON documents.
- `perfbench.restrelay` holds the actions a node of a chained REST relay
  performs (sleep, busy loop, allocation, JSON serialization and parsing,
  logging, a database round trip, forwarding to the next node), the helpers
  they share, and a command that generates Kubernetes manifests for a chain
  of such nodes.

## Installation

```
pip install perfbench
```

The MySQL round trip of the `db` action uses `pymysql`, which is installed
with the package.

## Writing a benchmark

```python
from perfbench.benchmark.core import Benchmark

b = Benchmark()
b.worker = lambda worker_id: 1          # loops done per call; 0 stops the worker
b.run(["--loops=1000", "-c", "4"])
```

`Benchmark.run(argv)` parses the options (`argv` defaults to `sys.argv[1:]`),
calls `init`, then `init_per_worker` for each worker, runs the workers
`repeat` times, calls `finish_per_worker` and `finish`, and prints the score
through `print_score`. With `--repeat` above 1 it also prints the average,
minimum and maximum rate. Ctrl-C sets `need_to_exit`, which stops the workers
after their current call.

The hooks are plain attributes: `add_opts`, `init`, `init_per_worker`,
`pre_worker`, `worker`, `finish_per_worker`, `finish`, `pre_exit`, `metric`,
`get_rate` and `print_score`. Results are kept in `Benchmark.score`, a `Score`
with `workers`, `seconds`, `loops`, `rate` and `metric`; `Score.format_rate`
formats the rate to four significant figures, and `Benchmark.geomean` returns
the geometric mean of a list of scores' rates.

Common options (`perfbench.benchmark.cli.CommonOpts`):

- `-c`, `--concurrency`: number of worker threads (values below 1 become 1).
- `-l`, `--loops`: total number of loops, shared out between workers; takes
  priority over the duration.
- `-d`, `--duration`: seconds each worker runs when no loop count is given
  (default 5, must be > 0).
- `-S`, `--sleep`: milliseconds to sleep between calls.
- `-r`, `--repeat`: number of runs (default 1).
- `-Q`, `--quiet`: log errors only.
- `-s`, `--randseed`: random seed (default 1; 0 seeds from the clock).
- `-v`, `-vv`: more verbose logging.

Extra options go in a dataclass instance registered from `add_opts` with
`b.cli.add_flag_group(name, description, options)`; field metadata may set
`short`, `long`, `help`, `required` and `count`. Invalid arguments raise
`CliError`.

`Benchmark.exit()` raises `SystemExit(0)`; given a message (optionally a
`%`-format with arguments) it prints it and raises `SystemExit(127)`.

On Unix, parsing the options also tries to raise the open-file limit.
`get_sysctl_value_int(key)` runs `sysctl -n key` and returns the value as an
integer.

### Random and fake data

`Randomizer(seed, workers)` keeps a `RandomizerWorker` for each worker id and
for id -1. Each worker has a `fixed`, a `seeded` and a `unique` random stream
and offers `intn`, `uintn64`, `uuid`, `uuidn`, `rand_time`, `read` and
`intn_exp`.

`perfbench.benchmark.faker` generates column values: `gen_fake_value` for one
column type (`autoinc`, `now_sec`, `now_ms`, `now_mcs`, `now_ns`, `now`,
`int`, `bigint`, `string`, `rstring`, `uuid`, `time`, `time_string`,
`time_ns`, `timestamp`, `byte`, `rbyte`, `json`, `bool`, `blob`), and
`gen_fake_data` / `gen_fake_data_as_map` for a list of `DBFakeColumnConf`.
Unknown types are offered to registered `RandomizerPlugin`s and otherwise
raise `FakeValueError`. The same calls are available as methods of
`Benchmark`.

`perfbench.benchmark.jsongen.gen_random_json` returns an indented JSON
document following one of a cached set of random schemas.

`perfbench.benchmark.logger.Logger` prints timestamped, levelled lines, and
`perfbench.benchmark.sets.Set` is a small set with `add`, `remove`, `in` and
`len`.

## Relay node actions

```python
from perfbench.restrelay.helpers import parse_file_size, parse_function_string
from perfbench.restrelay.serialization import get_closest_depth_and_width

parse_file_size("1.5KB")                        # 1536
parse_function_string("sleep(duration=5ms)")    # ("sleep", {"duration": "5ms"})
get_closest_depth_and_width(4096)               # (2, 5)
```

Each action class reads its parameters with `parse_parameters(params)` and
runs with `perform()`; bad parameters raise `ActionError`.

- `SleepAction`: `duration`, e.g. `10ms`.
- `BusyLoopAction`: exactly one of `iterations` or `duration`. A duration is
  turned into iterations using the rate measured by
  `setup_reference_iterations()`.
- `AllocationAction`: `size` such as `10KB` (units `B`, `KB`, `MB`, `GB`,
  `TB`, `PB`).
- `SerializationAction` and `ParseAction`: `depth` and `width` of a cached
  tree of `Serializable` objects, encoded to or decoded from JSON.
- `LoggingAction`: `logger` (`logf` or `logrus`), `type` (`text` or `json`),
  `length`, and optional `skip`; writes `length` records to stdout, or none
  when `skip` is true.
- `DatabaseAction`: `engine` (`postgres` or `mysql`) and `query` (only `1`,
  `SELECT 1`). Call `setup_database_environment(user, password,
  postgres_host, mysql_host)` first; hosts may carry a `:port`.

```python
from perfbench.restrelay.database import DatabaseAction, setup_database_environment

password = "password"
setup_database_environment("user", password, "localhost", "localhost:3306")
action = DatabaseAction()
action.parse_parameters({"engine": "postgres", "query": "1"})
action.perform()
```

`forward(base_url, parent_request, correlation_id, req_body)` sends a GET for
`base_url` plus the request's URI, with the `Connection` and
`X-Correlation-ID` headers, and returns the response body.
`TimestampBuilder` records a node's timestamps and the marshalled results of
the nodes after it.

## Kubernetes configuration

```
perfbench-kube-configurer --nodes 3 --registry localhost:5000 --node-config node.yml --db-config db.yml --output result
```

This renders `node.yml` once per node of the chain (`{{.ServiceName}}`,
`{{.DeploymentName}}`, `{{.NextService}}` and the other fields of
`KubernetesService`), separates the parts with `---`, appends `db.yml`,
writes the result to `result.yml`, and prints the commands that delete the
topology, or writes them to the file given with `-d` / `--delete-output`.
On an error it prints the message and exits with status 255.

## What this package does not do

The package has no HTTP server that reads actions from a request's query
string and runs them, and no load client that drives a chain of nodes and
reports latency per node. The actions, `forward` and `TimestampBuilder` are
the building blocks for such a server, but wiring them to a listening socket
is left to the caller.

## Running the tests

```
pip install "perfbench[test]"
pytest
```