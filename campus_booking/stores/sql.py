"""SQLAlchemy-backed booking store.

Works with any async SQLAlchemy URL; the default configuration uses SQLite
through ``aiosqlite``.  Confirmation is a single conditional ``UPDATE``:

    UPDATE room_bookings SET status = 'confirmed'
     WHERE id = :id AND status = 'pending'
       AND NOT EXISTS (overlapping confirmed row, same room and date)

so the non-overlap guarantee holds at commit time rather than at the moment
the reviewer last looked at the list.  On server databases the classroom row
is locked first so that concurrent approvals for one room serialize.
"""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    exists,
    select,
    update,
)
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, aliased, mapped_column

from campus_booking.models.booking import Booking, BookingStatus
from campus_booking.models.classroom import Classroom
from campus_booking.overlap import to_minutes

from .base import BookingStore

log = logging.getLogger("campus_booking.stores.sql")


class Base(DeclarativeBase):
    pass


class ClassroomRow(Base):
    __tablename__ = "classrooms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    building: Mapped[str] = mapped_column(String(255), default="")
    capacity: Mapped[int] = mapped_column(Integer, default=0)
    features: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class BookingRow(Base):
    __tablename__ = "room_bookings"
    __table_args__ = (
        CheckConstraint("end_minute > start_minute", name="ck_room_bookings_range"),
        Index("ix_room_bookings_slot", "classroom_id", "date", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    classroom_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("classrooms.id", ondelete="CASCADE")
    )
    date: Mapped[dt.date] = mapped_column(Date)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    # Minutes since midnight, so overlap can be evaluated in SQL.
    start_minute: Mapped[int] = mapped_column(Integer)
    end_minute: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default=BookingStatus.PENDING.value)
    requested_by: Mapped[str] = mapped_column(String(64), index=True)
    purpose: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)


def _to_booking(row: BookingRow) -> Booking:
    return Booking.model_validate(row, from_attributes=True)


def _to_classroom(row: ClassroomRow) -> Classroom:
    return Classroom.model_validate(row, from_attributes=True)


class SqlBookingStore(BookingStore):
    """BookingStore backed by SQLAlchemy's asyncio extension."""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self._engine = create_async_engine(database_url, echo=echo)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Booking tables ready on %s", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()

    # ------------------------------------------------------------------
    # Classrooms
    # ------------------------------------------------------------------

    async def list_classrooms(self) -> list[Classroom]:
        async with self._sessions() as session:
            rows = await session.scalars(
                select(ClassroomRow).order_by(ClassroomRow.building, ClassroomRow.id)
            )
            return [_to_classroom(r) for r in rows]

    async def get_classroom(self, classroom_id: str) -> Classroom | None:
        async with self._sessions() as session:
            row = await session.get(ClassroomRow, classroom_id)
            return _to_classroom(row) if row else None

    async def add_classroom(self, classroom: Classroom) -> Classroom:
        async with self._sessions() as session:
            async with session.begin():
                await session.merge(ClassroomRow(**classroom.model_dump()))
        return classroom

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Booking | None:
        async with self._sessions() as session:
            row = await session.get(BookingRow, booking_id)
            return _to_booking(row) if row else None

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
        stmt = select(BookingRow)
        if classroom_id is not None:
            stmt = stmt.where(BookingRow.classroom_id == classroom_id)
        if date is not None:
            stmt = stmt.where(BookingRow.date == date)
        if status is not None:
            stmt = stmt.where(BookingRow.status == status.value)
        if requested_by is not None:
            stmt = stmt.where(BookingRow.requested_by == requested_by)
        if start_date is not None:
            stmt = stmt.where(BookingRow.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(BookingRow.date <= end_date)
        stmt = stmt.order_by(BookingRow.date, BookingRow.start_minute, BookingRow.id)

        async with self._sessions() as session:
            rows = await session.scalars(stmt)
            return [_to_booking(r) for r in rows]

    async def add_booking(self, booking: Booking) -> Booking:
        data = booking.model_dump()
        data["status"] = booking.status.value
        row = BookingRow(
            **data,
            start_minute=to_minutes(booking.start_time),
            end_minute=to_minutes(booking.end_time),
        )
        async with self._sessions() as session:
            async with session.begin():
                session.add(row)
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
        now = dt.datetime.now(dt.timezone.utc)
        values: dict = {"status": new.value, "updated_at": now}
        if reviewed_by is not None:
            values.update(reviewed_by=reviewed_by, reviewed_at=now)

        stmt = (
            update(BookingRow)
            .where(BookingRow.id == booking_id, BookingRow.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if require_free_slot:
            other = aliased(BookingRow)
            overlapping = (
                select(other.id)
                .where(
                    other.id != BookingRow.id,
                    other.classroom_id == BookingRow.classroom_id,
                    other.date == BookingRow.date,
                    other.status == BookingStatus.CONFIRMED.value,
                    other.start_minute < BookingRow.end_minute,
                    BookingRow.start_minute < other.end_minute,
                )
                .correlate(BookingRow)
            )
            stmt = stmt.where(~exists(overlapping))

        async with self._sessions() as session:
            async with session.begin():
                if require_free_slot and self._engine.dialect.name != "sqlite":
                    await self._lock_classroom_of(session, booking_id)

                result = await session.execute(stmt)
                if result.rowcount != 1:
                    return None

                row = await session.scalar(
                    select(BookingRow)
                    .where(BookingRow.id == booking_id)
                    .execution_options(populate_existing=True)
                )
                return _to_booking(row)

    @staticmethod
    async def _lock_classroom_of(session, booking_id: str) -> None:
        # SQLite serializes writers on its own and has no FOR UPDATE.
        classroom_id = await session.scalar(
            select(BookingRow.classroom_id).where(BookingRow.id == booking_id)
        )
        if classroom_id is not None:
            await session.execute(
                select(ClassroomRow.id)
                .where(ClassroomRow.id == classroom_id)
                .with_for_update()
            )
