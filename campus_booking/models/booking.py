"""Pydantic models for classroom bookings and booking requests."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
)


class BookingAction(str, Enum):
    REQUEST = "request"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class Booking(BaseModel):
    """A reservation of one classroom for a time range on one day."""

    id: str
    classroom_id: str
    date: dt.date
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    status: BookingStatus = BookingStatus.PENDING
    requested_by: str
    purpose: str = ""
    created_at: dt.datetime
    updated_at: dt.datetime | None = None
    reviewed_at: dt.datetime | None = None
    reviewed_by: str | None = None


class BookingRequest(BaseModel):
    """Data submitted by a requester.  Parsed and validated by the arbiter."""

    classroom_id: str
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    purpose: str = ""


class ConflictCheckRequest(BaseModel):
    """Advisory conflict query issued by the presentation layer."""

    classroom_id: str
    date: str
    start_time: str
    end_time: str
    ignore_booking_id: str | None = None
