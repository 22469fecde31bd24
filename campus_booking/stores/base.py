"""Abstract base class for booking stores.

Defines the persistence interface the arbiter relies on.  Any backend
(in-memory, SQL) implements this ABC.  The one operation with teeth is
``transition``: it must check and write atomically, so two reviewers
approving overlapping requests at the same moment cannot both succeed.
"""

from __future__ import annotations

import datetime as dt
from abc import ABC, abstractmethod

from campus_booking.models.booking import Booking, BookingStatus
from campus_booking.models.classroom import Classroom


class BookingStore(ABC):
    """Abstract booking backend."""

    async def init(self) -> None:
        """Prepare the backend (create tables, open pools).  No-op by default."""

    async def close(self) -> None:
        """Release backend resources.  No-op by default."""

    # ------------------------------------------------------------------
    # Classrooms
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_classrooms(self) -> list[Classroom]:
        """Return every classroom, ordered by building then id."""

    @abstractmethod
    async def get_classroom(self, classroom_id: str) -> Classroom | None:
        """Return one classroom or ``None``."""

    @abstractmethod
    async def add_classroom(self, classroom: Classroom) -> Classroom:
        """Insert or replace a classroom keyed by its id."""

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Booking | None:
        """Return one booking or ``None``."""

    @abstractmethod
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
        """Return bookings matching every given filter.

        ``start_date`` and ``end_date`` are inclusive bounds on the booking
        date.  Ordered by date, then start time.
        """

    @abstractmethod
    async def add_booking(self, booking: Booking) -> Booking:
        """Persist a new booking."""

    @abstractmethod
    async def transition(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
        *,
        require_free_slot: bool = False,
        reviewed_by: str | None = None,
    ) -> Booking | None:
        """Atomically move a booking from ``expected`` to ``new``.

        Args:
            booking_id: Booking to update.
            expected: Status the booking must still have at commit time.
            new: Status to write.
            require_free_slot: Also require that no *other* confirmed
                booking for the same room and date overlaps this one.
            reviewed_by: Reviewer id; when given, ``reviewed_at`` is set too.

        Returns:
            The updated booking, or ``None`` if any precondition failed
            (missing booking, status moved on, slot taken).
        """
