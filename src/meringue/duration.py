from __future__ import annotations

import re
from datetime import timedelta

from .errors import DurationParseError

# ISO-8601 seconds-based durations: [-+]PnDTnHnMn.nS
# Years, months and weeks are rejected, as are empty "P" and "PT".
_DURATION = re.compile(
    r"(?P<sign>[-+]?)P"
    r"(?:(?P<days>[-+]?[0-9]+)D)?"
    r"(?P<time>T"
    r"(?:(?P<hours>[-+]?[0-9]+)H)?"
    r"(?:(?P<minutes>[-+]?[0-9]+)M)?"
    r"(?:(?P<seconds>[-+]?[0-9]+)(?:[.,](?P<fraction>[0-9]{0,9}))?S)?"
    r")?",
    re.IGNORECASE,
)


def parse_duration(text: str) -> timedelta:
    """
    Parse a textual duration such as "P1D", "PT30M" or "PT1.5S".

    :raises DurationParseError: if the text does not follow the grammar
    """
    if not text:
        raise DurationParseError("Duration must not be empty")
    match = _DURATION.fullmatch(text.strip())
    if match is None or match.group("time") in ("T", "t"):
        raise DurationParseError(f"Text cannot be parsed to a Duration: {text!r}")
    groups = match.groupdict()
    if all(groups[k] is None for k in ("days", "hours", "minutes", "seconds")):
        raise DurationParseError(f"Text cannot be parsed to a Duration: {text!r}")

    seconds = _signed(groups["seconds"])
    fraction = groups["fraction"] or ""
    micros = int((fraction + "000000")[:6]) if fraction else 0
    if groups["seconds"] is not None and groups["seconds"].startswith("-"):
        micros = -micros

    try:
        result = timedelta(
            days=_signed(groups["days"]),
            hours=_signed(groups["hours"]),
            minutes=_signed(groups["minutes"]),
            seconds=seconds,
            microseconds=micros,
        )
        return -result if groups["sign"] == "-" else result
    except OverflowError as e:
        raise DurationParseError(f"Text cannot be parsed to a Duration: {text!r}", e)


def format_duration(value: timedelta) -> str:
    """Render a timedelta back into the same grammar (used in log messages)."""
    total = value.total_seconds()
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    text = "PT"
    if hours:
        text += f"{int(hours)}H"
    if minutes:
        text += f"{int(minutes)}M"
    if seconds or text == "PT":
        text += f"{seconds:g}S"
    return sign + text


def _signed(value) -> int:
    return int(value) if value is not None else 0
