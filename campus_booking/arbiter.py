"""Booking Conflict Arbiter.

Drives a booking through its lifecycle:

    pending ──approve──▶ confirmed
       │ ───reject───▶ rejected
       └───cancel───▶ cancelled

``confirmed``, ``rejected`` and ``cancelled`` are terminal.  Every write goes
through ``BookingStore.transition`` so the precondition (status still
``pending``, and for approval, slot still free) is checked at commit time.
Nothing here caches the confirmed set; every query reads the store.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid

from campus_booking.conflicts import confirmed_for, conflicting_bookings
from campus_booking.errors import (
    ClassroomInactive,
    Conflict,
    InvalidRange,
    InvalidTransition,
    NotFound,
)
from campus_booking.events import get_broadcaster
from campus_booking.models.booking import Booking, BookingAction, BookingStatus
from campus_booking.models.classroom import Classroom
from campus_booking.overlap import parse_date, validate_range
from campus_booking.stores.base import BookingStore

log = logging.getLogger("campus_booking.arbiter")

BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingAction], BookingStatus] = {
    (BookingStatus.PENDING, BookingAction.APPROVE): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingAction.REJECT): BookingStatus.REJECTED,
    (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELLED,
}


def _new_booking_id() -> str:
    return f"BK-{uuid.uuid4().hex[:12]}"


def _date_bounds(start_date, end_date) -> tuple[dt.date | None, dt.date | None]:
    """Parse an inclusive, optionally open-ended date range."""
    first = parse_date(start_date) if start_date is not None else None
    last = parse_date(end_date) if end_date is not None else None
    if first and last and last < first:
        raise InvalidRange("End date must not be before start date")
    return first, last


class BookingArbiter:
    """Conflict queries and state transitions over a ``BookingStore``."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    @property
    def store(self) -> BookingStore:
        return self._store

    # ------------------------------------------------------------------
    # Classrooms
    # ------------------------------------------------------------------

    async def list_classrooms(
        self, building: str | None = None, active: bool | None = None
    ) -> list[Classroom]:
        rooms = await self._store.list_classrooms()
        return [
            c
            for c in rooms
            if (building is None or c.building == building)
            and (active is None or c.is_active == active)
        ]

    async def get_classroom(self, classroom_id: str) -> Classroom:
        classroom = await self._store.get_classroom(classroom_id)
        if classroom is None:
            raise NotFound(f"Classroom {classroom_id} not found")
        return classroom

    async def schedule(
        self, classroom_id: str, date=None, *, start_date=None, end_date=None
    ) -> list[Booking]:
        """Confirmed bookings for a room, earliest first.

        ``date`` selects a single day.  Without it, ``start_date`` and
        ``end_date`` bound an inclusive range; with neither given the
        schedule runs from today onwards.
        """
        await self.get_classroom(classroom_id)
        if date is not None:
            day = parse_date(date)
            bookings = await self._store.list_bookings(
                classroom_id=classroom_id, date=day, status=BookingStatus.CONFIRMED
            )
            return confirmed_for(bookings, classroom_id, day)

        if start_date is None and end_date is None:
            start_date = dt.date.today()
        first, last = _date_bounds(start_date, end_date)
        return await self._store.list_bookings(
            classroom_id=classroom_id,
            status=BookingStatus.CONFIRMED,
            start_date=first,
            end_date=last,
        )

    async def available_classrooms(self, date, start_time, end_time) -> list[Classroom]:
        """Active classrooms with no confirmed booking overlapping the range."""
        day = parse_date(date)
        start, end = validate_range(start_time, end_time)
        confirmed = await self._store.list_bookings(date=day, status=BookingStatus.CONFIRMED)
        return [
            c
            for c in await self._store.list_classrooms()
            if c.is_active and not conflicting_bookings(confirmed, c.id, day, start, end)
        ]

    # ------------------------------------------------------------------
    # Conflict query
    # ------------------------------------------------------------------

    async def conflicting_bookings(
        self,
        classroom_id: str,
        date,
        start_time,
        end_time,
        ignore_booking_id: str | None = None,
    ) -> list[Booking]:
        day = parse_date(date)
        start, end = validate_range(start_time, end_time)
        confirmed = await self._store.list_bookings(
            classroom_id=classroom_id, date=day, status=BookingStatus.CONFIRMED
        )
        return conflicting_bookings(confirmed, classroom_id, day, start, end, ignore_booking_id)

    async def check_conflict(
        self,
        classroom_id: str,
        date,
        start_time,
        end_time,
        ignore_booking_id: str | None = None,
    ) -> bool:
        """Advisory check: does the range overlap a confirmed booking right now?

        Input is validated (``InvalidRange``) before the query runs; the
        answer itself is only a hint, since another reviewer may confirm a
        booking a moment later.  ``approve`` re-checks atomically.
        """
        return bool(
            await self.conflicting_bookings(
                classroom_id, date, start_time, end_time, ignore_booking_id
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def request_booking(
        self,
        classroom_id: str,
        date,
        start_time,
        end_time,
        requested_by: str,
        purpose: str = "",
    ) -> Booking:
        """Create a ``pending`` booking.

        Raises:
            InvalidRange: unparseable date/time or ``start >= end``.
            NotFound: unknown classroom.
            ClassroomInactive: the room is closed for booking.
            Conflict: the slot already holds a confirmed booking.
        """
        day = parse_date(date)
        start, end = validate_range(start_time, end_time)

        classroom = await self.get_classroom(classroom_id)
        if not classroom.is_active:
            raise ClassroomInactive(f"Classroom {classroom_id} is not active")

        if await self.check_conflict(classroom_id, day, start, end):
            raise Conflict("This time slot is already booked")

        booking = Booking(
            id=_new_booking_id(),
            classroom_id=classroom_id,
            date=day,
            start_time=start,
            end_time=end,
            status=BookingStatus.PENDING,
            requested_by=requested_by,
            purpose=purpose or "",
            created_at=dt.datetime.now(dt.timezone.utc),
        )
        await self._store.add_booking(booking)

        log.info(
            "Booking %s requested by %s: %s %s %s-%s",
            booking.id, requested_by, classroom_id, day, start, end,
        )
        self._emit("requested", booking)
        return booking

    async def approve(self, booking_id: str, reviewer_id: str | None = None) -> Booking:
        """``pending`` → ``confirmed``, refused with ``Conflict`` if the slot was taken."""
        return await self._transition(booking_id, BookingAction.APPROVE, reviewer_id)

    async def reject(self, booking_id: str, reviewer_id: str | None = None) -> Booking:
        return await self._transition(booking_id, BookingAction.REJECT, reviewer_id)

    async def cancel(self, booking_id: str) -> Booking:
        return await self._transition(booking_id, BookingAction.CANCEL)

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    async def list_bookings(
        self,
        classroom_id: str | None = None,
        date=None,
        status: BookingStatus | None = None,
        requested_by: str | None = None,
        start_date=None,
        end_date=None,
    ) -> list[Booking]:
        first, last = _date_bounds(start_date, end_date)
        return await self._store.list_bookings(
            classroom_id=classroom_id,
            date=parse_date(date) if date is not None else None,
            status=status,
            requested_by=requested_by,
            start_date=first,
            end_date=last,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(
        self,
        booking_id: str,
        action: BookingAction,
        reviewer_id: str | None = None,
    ) -> Booking:
        booking = await self.get_booking(booking_id)
        target = BOOKING_TRANSITIONS.get((booking.status, action))
        if target is None:
            log.warning(
                "Refused %s on booking %s (status=%s)",
                action.value, booking_id, booking.status.value,
            )
            raise InvalidTransition(
                f"Cannot {action.value} a {booking.status.value} booking"
            )

        updated = await self._store.transition(
            booking_id,
            booking.status,
            target,
            require_free_slot=target is BookingStatus.CONFIRMED,
            reviewed_by=reviewer_id if action is not BookingAction.CANCEL else None,
        )
        if updated is None:
            raise await self._explain_failed_transition(booking, action)

        log.info("Booking %s %s -> %s", booking_id, booking.status.value, target.value)
        self._emit(target.value, updated)
        return updated

    async def _explain_failed_transition(self, before: Booking, action: BookingAction) -> Exception:
        """Work out why the store's conditional update matched no row."""
        current = await self._store.get_booking(before.id)
        if current is None:
            return NotFound(f"Booking {before.id} not found")
        if current.status != before.status:
            log.warning(
                "Lost race on booking %s: %s arrived after it became %s",
                before.id, action.value, current.status.value,
            )
            return InvalidTransition(
                f"Cannot {action.value} a {current.status.value} booking"
            )
        log.warning("Refused approval of %s: slot taken by a confirmed booking", before.id)
        return Conflict("Cannot approve: this request conflicts with an existing booking")

    @staticmethod
    def _emit(event_type: str, booking: Booking) -> None:
        get_broadcaster(booking.classroom_id).emit(
            event_type, booking.id, booking.model_dump(mode="json")
        )
