"""Conflict query over a collection of bookings.

Only ``confirmed`` bookings occupy a slot; pending, rejected and cancelled
ones are ignored.  These functions never raise and only answer the
question; blocking an action is the caller's decision.
"""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Union

from campus_booking.models.booking import Booking, BookingStatus
from campus_booking.overlap import TimeValue, date_key, ranges_overlap, to_minutes

DateValue = Union[str, dt.date, dt.datetime]


def confirmed_for(
    bookings: Iterable[Booking],
    classroom_id: str,
    date: DateValue,
    ignore_booking_id: str | None = None,
) -> list[Booking]:
    """Confirmed bookings of one room on one day, earliest first."""
    key = date_key(date)
    if key is None:
        return []
    matches = [
        b
        for b in bookings
        if b.status == BookingStatus.CONFIRMED
        and b.classroom_id == classroom_id
        and date_key(b.date) == key
        and (ignore_booking_id is None or b.id != ignore_booking_id)
    ]
    matches.sort(key=lambda b: to_minutes(b.start_time))
    return matches


def conflicting_bookings(
    bookings: Iterable[Booking],
    classroom_id: str,
    date: DateValue,
    start_time: TimeValue,
    end_time: TimeValue,
    ignore_booking_id: str | None = None,
) -> list[Booking]:
    """Confirmed bookings that overlap the proposed range."""
    return [
        b
        for b in confirmed_for(bookings, classroom_id, date, ignore_booking_id)
        if ranges_overlap(start_time, end_time, b.start_time, b.end_time)
    ]


def has_conflict(
    bookings: Iterable[Booking],
    classroom_id: str,
    date: DateValue,
    start_time: TimeValue,
    end_time: TimeValue,
    ignore_booking_id: str | None = None,
) -> bool:
    return bool(
        conflicting_bookings(
            bookings, classroom_id, date, start_time, end_time, ignore_booking_id
        )
    )
