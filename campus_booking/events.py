"""Live booking feed for classroom screens.

The arbiter emits one event per successful write (``requested``,
``confirmed``, ``rejected``, ``cancelled``).  Every WebSocket client of a
room owns a bounded queue; a client that falls behind loses its oldest
events rather than stalling the writer.

Each room also remembers its most recent events.  A client reconnecting
after a dropped connection passes the timestamp of the last event it saw
(``since``) and is handed everything newer before live delivery starts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable, TypedDict

log = logging.getLogger("campus_booking.events")

HISTORY_SIZE = 500
QUEUE_SIZE = 200


class BookingEvent(TypedDict):
    type: str          # requested | confirmed | rejected | cancelled
    timestamp: float
    classroom_id: str
    booking_id: str
    data: dict


def _offer(q: asyncio.Queue[BookingEvent], event: BookingEvent) -> None:
    if q.full():
        q.get_nowait()
    q.put_nowait(event)


class BookingEventBroadcaster:
    """Fan-out of one classroom's booking events."""

    def __init__(
        self,
        classroom_id: str,
        *,
        history_size: int = HISTORY_SIZE,
        queue_size: int = QUEUE_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.classroom_id = classroom_id
        self._queue_size = queue_size
        self._clock = clock
        self._history: deque[BookingEvent] = deque(maxlen=history_size)
        self._queues: set[asyncio.Queue[BookingEvent]] = set()

    def subscribe(self, since: float | None = None) -> asyncio.Queue[BookingEvent]:
        """Open a subscriber queue, pre-filled with events newer than ``since``."""
        q: asyncio.Queue[BookingEvent] = asyncio.Queue(maxsize=self._queue_size)
        if since is not None:
            for event in self.replay(since):
                _offer(q, event)
        self._queues.add(q)
        log.debug("Feed subscriber joined %s (now %d)", self.classroom_id, len(self._queues))
        return q

    def unsubscribe(self, q: asyncio.Queue[BookingEvent]) -> None:
        self._queues.discard(q)
        log.debug("Feed subscriber left %s (now %d)", self.classroom_id, len(self._queues))

    def replay(self, since: float) -> list[BookingEvent]:
        """Remembered events with a timestamp after ``since``, oldest first."""
        return [e for e in self._history if e["timestamp"] > since]

    def emit(self, event_type: str, booking_id: str, data: dict) -> BookingEvent:
        event: BookingEvent = {
            "type": event_type,
            "timestamp": self._clock(),
            "classroom_id": self.classroom_id,
            "booking_id": booking_id,
            "data": data,
        }
        self._history.append(event)
        for q in self._queues:
            _offer(q, event)
        return event

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)


_broadcasters: dict[str, BookingEventBroadcaster] = {}


def get_broadcaster(classroom_id: str) -> BookingEventBroadcaster:
    """The broadcaster for ``classroom_id``, created on first use."""
    try:
        return _broadcasters[classroom_id]
    except KeyError:
        broadcaster = _broadcasters[classroom_id] = BookingEventBroadcaster(classroom_id)
        return broadcaster
