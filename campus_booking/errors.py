"""Booking error taxonomy.

Every error carries the HTTP status the API layer answers with.  None of
them are retried; callers surface them as-is.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for all arbiter failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRange(BookingError):
    """Start is not before end, or a time/date field failed to parse."""

    status_code = 400


class ClassroomInactive(BookingError):
    status_code = 400


class Forbidden(BookingError):
    """The caller's role may not perform the requested action."""

    status_code = 403


class NotFound(BookingError):
    status_code = 404


class Conflict(BookingError):
    """The range overlaps a confirmed booking for the same room and date."""

    status_code = 409


class InvalidTransition(BookingError):
    """The booking is not in a state the action can leave from."""

    status_code = 409
