import re

from perfbench.benchmark.logger import Logger, LogLevel


def test_new_logger_keeps_level():
    logger = Logger(1)
    assert logger.log_level == 1


def test_log_msg_not_skipped():
    logger = Logger(1)
    msg = logger.log_msg(1, 1, "test message")
    assert msg is not None
    assert msg.endswith("WRN: worker 001: test message")


def test_log_msg_skipped_above_level():
    logger = Logger(LogLevel.WARN)
    assert logger.log_msg(LogLevel.DEBUG, 0, "hidden") is None


def test_log_msg_timestamp_and_args():
    logger = Logger(LogLevel.TRACE)
    msg = logger.log_msg(LogLevel.ERROR, 7, "boom", "a", 5)
    assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6}    ERR: ", msg)
    assert msg.endswith("worker 007: boom, a, 5")


def test_log_msg_high_level_uses_trace_label():
    logger = Logger(10)
    msg = logger.log_msg(6, 0, "deep")
    assert "    TRA: worker 000: deep" in msg


def test_log_prints_newline(capsys):
    Logger(2).log(2, 2, "hello", "a")
    out = capsys.readouterr().out
    assert out.endswith("INF: worker 002: hello, a\n")


def test_logn_prints_without_newline(capsys):
    Logger(3).logn(3, 1, "dbg")
    out = capsys.readouterr().out
    assert out.endswith("DBG: worker 001: dbg")


def test_log_filtered_prints_nothing(capsys):
    Logger(0).log(1, 1, "quiet")
    assert capsys.readouterr().out == ""