import pytest

from perfbench.restrelay.allocation import AllocationAction
from perfbench.restrelay.helpers import ActionError


@pytest.mark.parametrize(
    "params, expected",
    [
        ({"size": "1KB"}, 1024),
        ({"size": "10MB"}, 10 * 1024 * 1024),
    ],
)
def test_parse_parameters_valid(params, expected):
    act = AllocationAction()
    act.parse_parameters(params)
    assert act.size == expected


@pytest.mark.parametrize(
    "params, message",
    [
        ({}, "size parameter is missing"),
        ({"size": "invalid"}, "failed conversion string to int in AllocationArguments with: invalid size format"),
        ({"size": "unsupported"}, "failed conversion string to int in AllocationArguments with: invalid size format"),
    ],
)
def test_parse_parameters_invalid(params, message):
    with pytest.raises(ActionError) as info:
        AllocationAction().parse_parameters(params)
    assert str(info.value) == message


@pytest.mark.parametrize("size, count", [(240, 10), (10, 0), (1024, 42)])
def test_perform_counts_records(size, count):
    assert AllocationAction(size=size).perform() == count