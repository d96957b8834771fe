import pytest

from picorun.executor.duration import format_duration


@pytest.mark.parametrize(
    "ms, expected",
    [
        (0, "0s"),
        (499, "0s"),
        (1500, "2s"),
        (2500, "3s"),
        (59_000, "59s"),
        (59_600, "60s"),
        (60_000, "1m 0.00s"),
        (61_000, "1m 1.00s"),
        (125_250, "2m 5.25s"),
    ],
)
def test_format_duration(ms: float, expected: str) -> None:
    assert format_duration(ms) == expected
