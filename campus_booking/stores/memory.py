"""In-process booking store.

Used for tests and single-worker deployments.  All mutations run under one
``asyncio.Lock`` so the check and the write of ``transition`` cannot
interleave with another coroutine.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging

from campus_booking.conflicts import has_conflict
from campus_booking.models.booking import Booking, BookingStatus
from campus_booking.models.classroom import Classroom
from campus_booking.overlap import to_minutes

from .base import BookingStore

log = logging.getLogger("campus_booking.stores.memory")


class MemoryBookingStore(BookingStore):
    def __init__(self) -> None:
        self._classrooms: dict[str, Classroom] = {}
        self._bookings: dict[str, Booking] = {}
        self._lock = asyncio.Lock()

    async def list_classrooms(self) -> list[Classroom]:
        rooms = sorted(self._classrooms.values(), key=lambda c: (c.building, c.id))
        return [c.model_copy(deep=True) for c in rooms]

    async def get_classroom(self, classroom_id: str) -> Classroom | None:
        room = self._classrooms.get(classroom_id)
        return room.model_copy(deep=True) if room else None

    async def add_classroom(self, classroom: Classroom) -> Classroom:
        async with self._lock:
            self._classrooms[classroom.id] = classroom.model_copy(deep=True)
        return classroom

    async def get_booking(self, booking_id: str) -> Booking | None:
        booking = self._bookings.get(booking_id)
        return booking.model_copy() if booking else None

    async def list_bookings(
        self,
        *,
        classroom_id: str | None = None,
        date: dt.date | None = None,
        status: BookingStatus | None = None,
        requested_by: str | None = None,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
    ) -> list[Booking]:
        matches = [
            b
            for b in self._bookings.values()
            if (classroom_id is None or b.classroom_id == classroom_id)
            and (date is None or b.date == date)
            and (status is None or b.status == status)
            and (requested_by is None or b.requested_by == requested_by)
            and (start_date is None or b.date >= start_date)
            and (end_date is None or b.date <= end_date)
        ]
        matches.sort(key=lambda b: (b.date, to_minutes(b.start_time)))
        return [b.model_copy() for b in matches]

    async def add_booking(self, booking: Booking) -> Booking:
        async with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._bookings[booking.id] = booking.model_copy()
        return booking

    async def transition(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
        *,
        require_free_slot: bool = False,
        reviewed_by: str | None = None,
    ) -> Booking | None:
        async with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None or booking.status != expected:
                return None

            if require_free_slot and has_conflict(
                self._bookings.values(),
                booking.classroom_id,
                booking.date,
                booking.start_time,
                booking.end_time,
                ignore_booking_id=booking.id,
            ):
                log.info("Slot taken for %s, refusing %s", booking_id, new.value)
                return None

            now = dt.datetime.now(dt.timezone.utc)
            changes: dict = {"status": new, "updated_at": now}
            if reviewed_by is not None:
                changes.update(reviewed_by=reviewed_by, reviewed_at=now)

            updated = booking.model_copy(update=changes)
            self._bookings[booking_id] = updated
            return updated.model_copy()
