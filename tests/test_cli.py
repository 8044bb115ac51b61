from dataclasses import dataclass, field

import pytest

from perfbench.benchmark.cli import CLI, CliError, CommonOpts


@dataclass
class _Extra:
    scenario: str = field(default="sleep-sleep-sleep", metadata={"short": "s", "long": "scenario"})
    port: int = field(default=0, metadata={"short": "p", "long": "port"})
    ssl_enabled: bool = False


def _cli():
    opts = CommonOpts()
    return CLI("prog", opts), opts


def test_defaults_after_parse():
    cli, opts = _cli()
    rest = cli.parse([])
    assert rest == []
    assert opts.duration == 5
    assert opts.repeat == 1
    assert opts.rand_seed == 1
    assert opts.loops == 0
    assert opts.workers == 1  # raised from 0 by the checks


def test_long_and_short_options():
    cli, opts = _cli()
    cli.parse(["--duration=2", "-l", "7", "-c=3", "-Q", "--sleep", "4"])
    assert opts.duration == 2
    assert opts.loops == 7
    assert opts.workers == 3
    assert opts.quiet is True
    assert opts.sleep == 4


def test_verbose_counts():
    cli, opts = _cli()
    cli.parse(["-vv"])
    assert opts.verbose == 2


def test_zero_duration_rejected():
    cli, _ = _cli()
    with pytest.raises(CliError, match="duration should be > 0"):
        cli.parse(["--duration=0"])


def test_negative_loops_rejected():
    cli, _ = _cli()
    with pytest.raises(CliError, match="loops should be >= 0"):
        cli.parse(["--loops=-1"])


def test_unknown_flag_rejected():
    cli, _ = _cli()
    with pytest.raises(CliError):
        cli.parse(["--no-such-flag"])


def test_bad_integer_rejected():
    cli, _ = _cli()
    with pytest.raises(CliError):
        cli.parse(["--concurrency", "many"])


def test_flag_group_values_written_back():
    cli, opts = _cli()
    extra = _Extra()
    cli.add_flag_group("group", "description", extra)
    rest = cli.parse(["--scenario", "echo", "-p", "8080", "--ssl-enabled", "-c", "2", "tail"])
    assert extra.scenario == "echo"
    assert extra.port == 8080
    assert extra.ssl_enabled is True
    assert opts.workers == 2
    assert rest == ["tail"]


def test_flag_group_defaults_kept():
    cli, _ = _cli()
    extra = _Extra()
    cli.add_flag_group("group", "", extra)
    cli.parse([])
    assert extra.scenario == "sleep-sleep-sleep"
    assert extra.ssl_enabled is False


def test_add_flag_group_requires_dataclass():
    cli, _ = _cli()
    with pytest.raises(TypeError):
        cli.add_flag_group("group", "", object())


def test_help_exits_cleanly(capsys):
    cli, _ = _cli()
    cli.set_application_name("renamed")
    with pytest.raises(SystemExit) as info:
        cli.parse(["--help"])
    assert info.value.code == 0
    assert "renamed" in capsys.readouterr().out


def test_usage_and_description():
    cli, _ = _cli()
    cli.set_usage("usage text")
    cli.set_description("more")
    assert cli.usage == "usage text\nmore"