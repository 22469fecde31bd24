"""Who may do what to a booking.

An explicit table keyed by ``(role, action)``.  The HTTP layer consults it
before invoking the arbiter; the arbiter itself assumes the caller has
already been authorized.

    role      request  approve  reject  cancel
    admin     any      any      any     own
    staff     any      any      any     own
    student   any      -        -       own

``own`` means the actor is the booking's requester.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from campus_booking.errors import Forbidden
from campus_booking.models.booking import Booking, BookingAction

ROLES = ("admin", "staff", "student")


class Scope(str, Enum):
    ANY = "any"
    OWN = "own"


CAPABILITIES: dict[tuple[str, BookingAction], Scope] = {
    ("admin", BookingAction.REQUEST): Scope.ANY,
    ("admin", BookingAction.APPROVE): Scope.ANY,
    ("admin", BookingAction.REJECT): Scope.ANY,
    ("admin", BookingAction.CANCEL): Scope.OWN,
    ("staff", BookingAction.REQUEST): Scope.ANY,
    ("staff", BookingAction.APPROVE): Scope.ANY,
    ("staff", BookingAction.REJECT): Scope.ANY,
    ("staff", BookingAction.CANCEL): Scope.OWN,
    ("student", BookingAction.REQUEST): Scope.ANY,
    ("student", BookingAction.CANCEL): Scope.OWN,
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    id: str
    role: str


def is_allowed(actor: Actor, action: BookingAction, booking: Booking | None = None) -> bool:
    scope = CAPABILITIES.get((actor.role, action))
    if scope is None:
        return False
    if scope is Scope.OWN:
        return booking is not None and booking.requested_by == actor.id
    return True


def authorize(actor: Actor, action: BookingAction, booking: Booking | None = None) -> None:
    """Raise ``Forbidden`` unless the table allows ``action`` for ``actor``."""
    if is_allowed(actor, action, booking):
        return
    if CAPABILITIES.get((actor.role, action)) is Scope.OWN:
        raise Forbidden(f"You can only {action.value} your own bookings")
    raise Forbidden(f"Role {actor.role!r} may not {action.value} bookings")
