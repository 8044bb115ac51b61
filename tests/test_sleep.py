import time
from datetime import timedelta

import pytest

from perfbench.restrelay.helpers import ActionError
from perfbench.restrelay.sleep import SleepAction


@pytest.mark.parametrize(
    "params, expected",
    [
        ({"duration": "1s"}, timedelta(seconds=1)),
        ({"duration": "500ms"}, timedelta(milliseconds=500)),
    ],
)
def test_parse_parameters_valid(params, expected):
    act = SleepAction()
    act.parse_parameters(params)
    assert act.duration == expected


@pytest.mark.parametrize(
    "params, message",
    [
        ({}, "duration parameter is missing"),
        (
            {"duration": "invalid"},
            'failed conversion string to int in SleepArguments with: time: invalid duration "invalid"',
        ),
    ],
)
def test_parse_parameters_invalid(params, message):
    act = SleepAction()
    with pytest.raises(ActionError) as info:
        act.parse_parameters(params)
    assert str(info.value) == message
    assert act.duration == timedelta(0)


def test_perform_sleeps():
    act = SleepAction()
    act.parse_parameters({"duration": "20ms"})
    start = time.monotonic()
    act.perform()
    elapsed = time.monotonic() - start
    assert act.duration == timedelta(milliseconds=20)
    assert elapsed >= 0.015


def test_perform_negative_returns_immediately():
    act = SleepAction()
    act.parse_parameters({"duration": "-5s"})
    start = time.monotonic()
    act.perform()
    elapsed = time.monotonic() - start
    assert act.duration == timedelta(seconds=-5)
    assert elapsed < 1.0