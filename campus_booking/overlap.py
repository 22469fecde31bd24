"""Time-of-day parsing and the half-open overlap predicate.

Two flavours of parsing live here:

* ``to_minutes`` is lenient.  Missing or unparseable parts count as ``0``
  and it never raises, so the predicate can be run over whatever is in the
  store.
* ``parse_time`` / ``validate_range`` / ``parse_date`` are strict and raise
  ``InvalidRange``.  They guard every value entering the arbiter, so a typo
  is never silently booked at midnight.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Union

from campus_booking.errors import InvalidRange

TimeValue = Union[str, dt.time, int, None]

_STRICT_TIME = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _int_or_zero(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def to_minutes(value: TimeValue) -> int:
    """Convert ``"HH:MM"`` (or a ``time`` / minute count) to minutes since midnight."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, dt.time):
        return value.hour * 60 + value.minute

    parts = str(value).split(":")
    hours = _int_or_zero(parts[0])
    minutes = _int_or_zero(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def ranges_overlap(
    a_start: TimeValue,
    a_end: TimeValue,
    b_start: TimeValue,
    b_end: TimeValue,
) -> bool:
    """True iff ``[a_start, a_end)`` and ``[b_start, b_end)`` share an instant.

    Touching endpoints (one range ends exactly when the other begins) do
    not overlap.  Inverted or empty ranges are not rejected here.
    """
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(b_start) < to_minutes(a_end)


def parse_time(value: TimeValue, field: str = "time") -> str:
    """Validate a wall-clock time and return it normalized to ``HH:MM``."""
    if isinstance(value, dt.time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if not isinstance(value, str):
        raise InvalidRange(f"{field} is required in HH:MM format")

    match = _STRICT_TIME.match(value)
    if not match:
        raise InvalidRange(f"{field} must be HH:MM, got {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidRange(f"{field} is not a valid time of day: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


def validate_range(start: TimeValue, end: TimeValue) -> tuple[str, str]:
    """Parse both ends strictly and require ``start < end``."""
    start_s = parse_time(start, "start_time")
    end_s = parse_time(end, "end_time")
    if to_minutes(start_s) >= to_minutes(end_s):
        raise InvalidRange("End time must be after start time")
    return start_s, end_s


def parse_date(value: Union[str, dt.date, dt.datetime, None]) -> dt.date:
    """Reduce a date, datetime or ISO string to its calendar-day key.

    Time-of-day and time zone are ignored; ``"2025-03-10T23:30:00Z"`` is
    the 10th.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRange("date is required in YYYY-MM-DD format")
    try:
        return dt.date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise InvalidRange(f"date must be YYYY-MM-DD, got {value!r}") from None


def date_key(value: Union[str, dt.date, dt.datetime, None]) -> dt.date | None:
    """Lenient variant of ``parse_date`` used by the conflict query."""
    try:
        return parse_date(value)
    except InvalidRange:
        return None
