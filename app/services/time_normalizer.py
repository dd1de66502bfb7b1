# app/services/time_normalizer.py
from __future__ import annotations

import re
from datetime import time

from app.core.exceptions import InvalidTimeFormat

_TWELVE_HOUR_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")
_TWENTY_FOUR_HOUR_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_MERIDIEM_RE = re.compile(r"[AaPp][Mm]")


def normalize_to_24_hour(time_input: str) -> str:
    """
    Convert a user supplied time into 24-hour ``HH:MM``.

    Accepts ``"14:00"``, ``"9:30"``, ``"2:00 PM"``, ``"12:30am"``. Input
    without an AM/PM marker is treated as 24-hour already; a well formed
    ``HH:MM`` comes back unchanged.

    Raises
    ------
    InvalidTimeFormat
        If the value cannot be parsed or is out of range.
    """
    if not isinstance(time_input, str) or not time_input.strip():
        raise InvalidTimeFormat(f"Invalid time value: {time_input!r}")

    if _MERIDIEM_RE.search(time_input):
        match = _TWELVE_HOUR_RE.match(time_input)
        if match is None:
            raise InvalidTimeFormat(f"Invalid 12-hour time: {time_input!r}")

        hour, minute = int(match.group(1)), int(match.group(2))
        meridiem = match.group(3).upper()
        if not 1 <= hour <= 12 or not 0 <= minute <= 59:
            raise InvalidTimeFormat(f"Invalid 12-hour time: {time_input!r}")

        if hour == 12:
            hour = 0
        if meridiem == "PM":
            hour += 12
        return f"{hour:02d}:{minute:02d}"

    match = _TWENTY_FOUR_HOUR_RE.match(time_input)
    if match is None:
        raise InvalidTimeFormat(f"Invalid 24-hour time: {time_input!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise InvalidTimeFormat(f"Invalid 24-hour time: {time_input!r}")
    return f"{hour:02d}:{minute:02d}"


def parse_time(time24h: str) -> time:
    """
    Parse a normalized ``HH:MM`` string into a ``datetime.time``.
    """
    hours, minutes = normalize_to_24_hour(time24h).split(":")
    return time(int(hours), int(minutes))


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def to_display_time(time24h: str) -> str:
    """
    Render ``HH:MM`` as ``H:MM AM|PM`` (e.g. ``"14:30"`` -> ``"2:30 PM"``).
    """
    value = parse_time(time24h)
    meridiem = "AM" if value.hour < 12 else "PM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {meridiem}"
