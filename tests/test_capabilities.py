"""Tests for the (role, action) capability table."""

import datetime as dt

import pytest

from campus_booking.capabilities import CAPABILITIES, ROLES, Actor, Scope, authorize, is_allowed
from campus_booking.errors import Forbidden
from campus_booking.models.booking import Booking, BookingAction

BOOKING = Booking(
    id="BK-1",
    classroom_id="CR-101",
    date=dt.date(2025, 3, 10),
    start_time="09:00",
    end_time="10:00",
    requested_by="u-owner",
    created_at=dt.datetime(2025, 3, 1, tzinfo=dt.timezone.utc),
)


class TestTable:
    def test_every_role_may_request(self):
        for role in ROLES:
            assert CAPABILITIES[(role, BookingAction.REQUEST)] is Scope.ANY

    def test_cancel_is_always_own(self):
        for role in ROLES:
            assert CAPABILITIES[(role, BookingAction.CANCEL)] is Scope.OWN

    def test_students_cannot_review(self):
        assert ("student", BookingAction.APPROVE) not in CAPABILITIES
        assert ("student", BookingAction.REJECT) not in CAPABILITIES


class TestAuthorize:
    @pytest.mark.parametrize("role", ["admin", "staff"])
    def test_reviewers_may_approve_and_reject(self, role):
        actor = Actor(id="r-1", role=role)
        authorize(actor, BookingAction.APPROVE, BOOKING)
        authorize(actor, BookingAction.REJECT, BOOKING)

    def test_student_may_not_approve(self):
        with pytest.raises(Forbidden, match="may not approve"):
            authorize(Actor(id="u-owner", role="student"), BookingAction.APPROVE, BOOKING)

    def test_owner_may_cancel(self):
        authorize(Actor(id="u-owner", role="student"), BookingAction.CANCEL, BOOKING)

    def test_other_user_may_not_cancel(self):
        with pytest.raises(Forbidden, match="your own"):
            authorize(Actor(id="u-other", role="student"), BookingAction.CANCEL, BOOKING)

    def test_admin_may_not_cancel_someone_elses(self):
        assert not is_allowed(Actor(id="r-1", role="admin"), BookingAction.CANCEL, BOOKING)

    def test_own_scope_needs_a_booking(self):
        assert not is_allowed(Actor(id="u-owner", role="student"), BookingAction.CANCEL)

    def test_unknown_role(self):
        with pytest.raises(Forbidden):
            authorize(Actor(id="x", role="parent"), BookingAction.REQUEST)
