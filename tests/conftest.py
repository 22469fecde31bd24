"""Shared fixtures: an in-memory store seeded with the sample classrooms."""

import pytest

from campus_booking.arbiter import BookingArbiter
from campus_booking.seed import seed_classrooms
from campus_booking.stores import MemoryBookingStore

DAY = "2025-03-10"


@pytest.fixture
async def store():
    store = MemoryBookingStore()
    await seed_classrooms(store)
    return store


@pytest.fixture
def arbiter(store):
    return BookingArbiter(store)


@pytest.fixture
def confirm(arbiter):
    """Request and approve a booking in one step."""

    async def _confirm(start, end, classroom_id="CR-101", date=DAY, requested_by="u-staff"):
        booking = await arbiter.request_booking(classroom_id, date, start, end, requested_by)
        return await arbiter.approve(booking.id, reviewer_id="r-admin")

    return _confirm
