"""Tests for SqlBookingStore against a throwaway SQLite file."""

import asyncio
import datetime as dt

import pytest

from campus_booking.arbiter import BookingArbiter
from campus_booking.errors import Conflict, InvalidTransition
from campus_booking.models.booking import Booking, BookingStatus
from campus_booking.models.classroom import Classroom
from campus_booking.seed import seed_classrooms
from campus_booking.stores import SqlBookingStore

DAY = dt.date(2025, 3, 10)
NOW = dt.datetime(2025, 3, 1, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
async def sql_store(tmp_path):
    store = SqlBookingStore(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await store.init()
    await seed_classrooms(store)
    yield store
    await store.close()


def _booking(booking_id, start, end, status=BookingStatus.PENDING, classroom_id="CR-101", date=DAY):
    return Booking(
        id=booking_id,
        classroom_id=classroom_id,
        date=date,
        start_time=start,
        end_time=end,
        status=status,
        requested_by="u-1",
        purpose="Seminar",
        created_at=NOW,
    )


class TestClassrooms:
    async def test_seeded(self, sql_store):
        rooms = await sql_store.list_classrooms()
        assert {c.id for c in rooms} == {"CR-101", "CR-204", "LAB-3"}

    async def test_get_roundtrip(self, sql_store):
        room = await sql_store.get_classroom("LAB-3")
        assert room.name == "Computer Lab 3"
        assert room.features == ["Computers", "Air Conditioning"]
        assert room.is_active is True

    async def test_add_replaces(self, sql_store):
        await sql_store.add_classroom(Classroom(id="LAB-3", name="Lab 3 (closed)", is_active=False))
        room = await sql_store.get_classroom("LAB-3")
        assert room.name == "Lab 3 (closed)"
        assert room.is_active is False

    async def test_missing(self, sql_store):
        assert await sql_store.get_classroom("nope") is None


class TestBookings:
    async def test_add_and_get(self, sql_store):
        await sql_store.add_booking(_booking("B1", "09:00", "10:00"))
        booking = await sql_store.get_booking("B1")
        assert booking.date == DAY
        assert booking.start_time == "09:00"
        assert booking.status == BookingStatus.PENDING
        assert booking.purpose == "Seminar"

    async def test_list_filters_and_order(self, sql_store):
        await sql_store.add_booking(_booking("late", "15:00", "16:00"))
        await sql_store.add_booking(_booking("early", "08:00", "09:00"))
        await sql_store.add_booking(_booking("other-room", "08:00", "09:00", classroom_id="CR-204"))
        await sql_store.add_booking(
            _booking("other-day", "08:00", "09:00", date=dt.date(2025, 3, 11))
        )

        found = await sql_store.list_bookings(classroom_id="CR-101", date=DAY)
        assert [b.id for b in found] == ["early", "late"]

        everything = await sql_store.list_bookings()
        assert len(everything) == 4

    async def test_list_by_status(self, sql_store):
        await sql_store.add_booking(_booking("B1", "09:00", "10:00", status=BookingStatus.CONFIRMED))
        await sql_store.add_booking(_booking("B2", "11:00", "12:00"))
        found = await sql_store.list_bookings(status=BookingStatus.CONFIRMED)
        assert [b.id for b in found] == ["B1"]


    async def test_list_date_range_inclusive(self, sql_store):
        for i, day in enumerate((9, 10, 11, 12)):
            await sql_store.add_booking(
                _booking(f"B{i}", "09:00", "10:00", date=dt.date(2025, 3, day))
            )
        found = await sql_store.list_bookings(
            start_date=dt.date(2025, 3, 10), end_date=dt.date(2025, 3, 11)
        )
        assert [b.id for b in found] == ["B1", "B2"]

        assert [b.id for b in await sql_store.list_bookings(end_date=dt.date(2025, 3, 9))] == ["B0"]


class TestConditionalTransition:
    async def test_expected_status_must_match(self, sql_store):
        await sql_store.add_booking(_booking("B1", "09:00", "10:00", status=BookingStatus.REJECTED))
        result = await sql_store.transition("B1", BookingStatus.PENDING, BookingStatus.CONFIRMED)
        assert result is None
        assert (await sql_store.get_booking("B1")).status == BookingStatus.REJECTED

    async def test_missing_booking(self, sql_store):
        assert await sql_store.transition("nope", BookingStatus.PENDING, BookingStatus.CANCELLED) is None

    async def test_sets_review_fields(self, sql_store):
        await sql_store.add_booking(_booking("B1", "09:00", "10:00"))
        result = await sql_store.transition(
            "B1", BookingStatus.PENDING, BookingStatus.REJECTED, reviewed_by="r-1"
        )
        assert result.status == BookingStatus.REJECTED
        assert result.reviewed_by == "r-1"
        assert result.reviewed_at is not None

    async def test_free_slot_required(self, sql_store):
        await sql_store.add_booking(_booking("held", "09:00", "10:00", status=BookingStatus.CONFIRMED))
        await sql_store.add_booking(_booking("B1", "09:30", "10:30"))

        result = await sql_store.transition(
            "B1", BookingStatus.PENDING, BookingStatus.CONFIRMED, require_free_slot=True
        )
        assert result is None
        assert (await sql_store.get_booking("B1")).status == BookingStatus.PENDING

    async def test_touching_slot_is_free(self, sql_store):
        await sql_store.add_booking(_booking("held", "09:00", "10:00", status=BookingStatus.CONFIRMED))
        await sql_store.add_booking(_booking("B1", "10:00", "11:00"))
        result = await sql_store.transition(
            "B1", BookingStatus.PENDING, BookingStatus.CONFIRMED, require_free_slot=True
        )
        assert result.status == BookingStatus.CONFIRMED

    async def test_pending_neighbour_does_not_block(self, sql_store):
        await sql_store.add_booking(_booking("other", "09:00", "10:00"))
        await sql_store.add_booking(_booking("B1", "09:00", "10:00"))
        result = await sql_store.transition(
            "B1", BookingStatus.PENDING, BookingStatus.CONFIRMED, require_free_slot=True
        )
        assert result.status == BookingStatus.CONFIRMED

    async def test_other_room_and_day_do_not_block(self, sql_store):
        await sql_store.add_booking(
            _booking("room", "09:00", "10:00", status=BookingStatus.CONFIRMED, classroom_id="CR-204")
        )
        await sql_store.add_booking(
            _booking("day", "09:00", "10:00", status=BookingStatus.CONFIRMED, date=dt.date(2025, 3, 11))
        )
        await sql_store.add_booking(_booking("B1", "09:00", "10:00"))
        result = await sql_store.transition(
            "B1", BookingStatus.PENDING, BookingStatus.CONFIRMED, require_free_slot=True
        )
        assert result is not None


class TestArbiterOverSql:
    async def test_scenarios(self, sql_store):
        arbiter = BookingArbiter(sql_store)
        b1 = await arbiter.request_booking("CR-101", "2025-03-10", "09:00", "10:00", "u-1")
        await arbiter.approve(b1.id, reviewer_id="r-1")

        assert await arbiter.check_conflict("CR-101", "2025-03-10", "09:30", "10:30")
        assert not await arbiter.check_conflict("CR-101", "2025-03-10", "10:00", "11:00")
        with pytest.raises(InvalidTransition):
            await arbiter.approve(b1.id)

    async def test_concurrent_approvals_one_wins(self, sql_store):
        arbiter = BookingArbiter(sql_store)
        a = await arbiter.request_booking("CR-101", "2025-03-10", "09:00", "10:00", "u-1")
        b = await arbiter.request_booking("CR-101", "2025-03-10", "09:30", "10:30", "u-2")

        results = await asyncio.gather(
            arbiter.approve(a.id), arbiter.approve(b.id), return_exceptions=True
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], Conflict)
        confirmed = await sql_store.list_bookings(status=BookingStatus.CONFIRMED)
        assert len(confirmed) == 1
