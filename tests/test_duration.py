from datetime import timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from meringue.duration import format_duration, parse_duration
from meringue.errors import ConfigurationError, DurationParseError


def test_one_day_is_24_hours():
    assert parse_duration("P1D") == timedelta(hours=24)


def test_thirty_minutes():
    assert parse_duration("PT30M") == timedelta(minutes=30)


@pytest.mark.parametrize("text, expected", [
    ("PT1S", timedelta(seconds=1)),
    ("pt1.5s", timedelta(seconds=1.5)),
    ("P2DT3H4M", timedelta(days=2, hours=3, minutes=4)),
    ("PT-6H3M", timedelta(hours=-6, minutes=3)),
    ("-PT6H", timedelta(hours=-6)),
    ("PT0S", timedelta(0)),
])
def test_accepted_forms(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "P", "PT", "1D", "P1Y", "P1W", "PT1H ago", "P1DT", "hello",
                                  "P1000000000D", "PT99999999999999999999S"])
def test_malformed_text_is_rejected(text):
    with pytest.raises(DurationParseError):
        parse_duration(text)


def test_parse_error_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_duration("tomorrow")


@given(st.integers(0, 100), st.integers(0, 23), st.integers(0, 59), st.integers(0, 59))
def test_components_add_up(days, hours, minutes, seconds):
    text = f"P{days}DT{hours}H{minutes}M{seconds}S"
    assert parse_duration(text) == timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)


def test_format_duration():
    assert format_duration(timedelta(hours=1, minutes=30)) == "PT1H30M"
    assert format_duration(timedelta(0)) == "PT0S"
    assert parse_duration(format_duration(timedelta(days=1))) == timedelta(days=1)
