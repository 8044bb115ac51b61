from datetime import timedelta

import pytest

from perfbench.restrelay.busyloop import (
    BusyLoopAction,
    reference_iterations_per_sec,
    setup_reference_iterations,
)
from perfbench.restrelay.helpers import ActionError


def test_setup_reference_iterations():
    rate = setup_reference_iterations(20_000)
    assert rate > 0.0
    assert reference_iterations_per_sec() == rate


@pytest.mark.parametrize(
    "params, iterations, duration",
    [
        ({"iterations": "1000"}, 1000, timedelta(0)),
        ({"duration": "2s"}, 0, timedelta(seconds=2)),
    ],
)
def test_parse_parameters_valid(params, iterations, duration):
    action = BusyLoopAction()
    action.parse_parameters(params)
    assert action.iterations == iterations
    assert action.duration == duration


@pytest.mark.parametrize(
    "params, message",
    [
        ({"iterations": "1000", "duration": "2s"}, "both iterations and duration parameters are set"),
        ({}, "either iterations or duration parameters should be set"),
        (
            {"iterations": "invalid"},
            'failed conversion string to int in BusyLoopArguments with: '
            'strconv.Atoi: parsing "invalid": invalid syntax',
        ),
        (
            {"duration": "invalid"},
            'failed conversion string to duration in BusyLoopArguments with: '
            'time: invalid duration "invalid"',
        ),
    ],
)
def test_parse_parameters_invalid(params, message):
    with pytest.raises(ActionError) as info:
        BusyLoopAction().parse_parameters(params)
    assert str(info.value) == message


def test_perform_with_iterations():
    assert BusyLoopAction(iterations=1000).perform() == 1000


def test_perform_with_subsecond_duration_does_nothing():
    setup_reference_iterations(10_000)
    assert BusyLoopAction(duration=timedelta(milliseconds=900)).perform() == 0