from datetime import timedelta

import pytest

from eksgitops.utils.duration import format_duration, parse_duration


@pytest.mark.parametrize(
    "text, expected",
    [
        ("25m", timedelta(minutes=25)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("90s", timedelta(seconds=90)),
        ("1.5h", timedelta(minutes=90)),
        ("500ms", timedelta(milliseconds=500)),
        ("1m30s", timedelta(minutes=1, seconds=30)),
        ("0", timedelta(0)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "10", "ten minutes", "5mx", "m5", "1d"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_format_duration_matches_eksctl_style():
    assert format_duration(timedelta(minutes=25)) == "25m"
    assert format_duration(timedelta(hours=1, minutes=30)) == "1h30m"
    assert format_duration(timedelta(hours=2)) == "2h"
    assert format_duration(timedelta(seconds=45)) == "45s"
    assert format_duration(timedelta(0)) == "0s"
