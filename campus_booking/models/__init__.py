"""Data models for the booking layer."""

from .booking import (
    Booking,
    BookingAction,
    BookingRequest,
    BookingStatus,
    ConflictCheckRequest,
)
from .classroom import Classroom

__all__ = [
    "Booking",
    "BookingAction",
    "BookingRequest",
    "BookingStatus",
    "Classroom",
    "ConflictCheckRequest",
]
