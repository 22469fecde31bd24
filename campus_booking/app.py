"""FastAPI application: HTTP + WebSocket endpoints for classroom booking.

Endpoints:

  GET  /health                                   Health check
  GET  /classrooms                               List classrooms
  GET  /classrooms/availability                  Active rooms free for a range
  GET  /classrooms/{id}                          Classroom detail
  GET  /classrooms/{id}/schedule                  Confirmed bookings for a day or date range
  POST /bookings                                 Request a booking (pending)
  GET  /bookings                                 List bookings
  POST /bookings/conflicts                       Advisory conflict query
  GET  /bookings/{id}                            Booking detail
  POST /bookings/{id}/approve                    Reviewer: pending → confirmed
  POST /bookings/{id}/reject                     Reviewer: pending → rejected
  POST /bookings/{id}/cancel                     Requester: pending → cancelled
  WS   /ws/classrooms/{id}/bookings?since=        Live booking events for a room

The booking flow:
  1. The portal calls POST /bookings/conflicts while the form is filled in
  2. POST /bookings stores a pending request (refused if the slot is confirmed)
  3. A reviewer approves; the slot check is repeated atomically in the store
  4. Subscribers of the room's WebSocket feed see every transition
"""

from __future__ import annotations

# Load .env into os.environ before settings are read.
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
import time
from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from campus_booking.arbiter import BookingArbiter
from campus_booking.auth import get_actor, require_reviewer_token, require_reviewer_ws
from campus_booking.capabilities import Actor, authorize
from campus_booking.config import settings
from campus_booking.errors import BookingError
from campus_booking.events import get_broadcaster
from campus_booking.models.booking import (
    BookingAction,
    BookingRequest,
    BookingStatus,
    ConflictCheckRequest,
)
from campus_booking.seed import seed_classrooms
from campus_booking.stores import BookingStore, create_store

log = logging.getLogger("campus_booking.app")

_START_TIME = time.time()


def _ok(data, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        {"success": True, "data": jsonable_encoder(data)},
        status_code=status_code,
    )


async def _pump_events(websocket: WebSocket, queue: asyncio.Queue, classroom_id: str) -> None:
    """Forward queued events to the client; close the socket if a send fails."""
    while True:
        event = await queue.get()
        try:
            await websocket.send_json(event)
        except Exception as e:
            log.warning("Booking feed send failed for %s: %s", classroom_id, e)
            try:
                await websocket.close(code=1011)
            except RuntimeError:
                pass  # already closed
            return


def create_app(store: BookingStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    store = store or create_store(settings)
    arbiter = BookingArbiter(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for warning in settings.validate_startup():
            log.warning(warning)
        await store.init()
        await seed_classrooms(store, settings.classrooms_json or None, only_if_empty=True)
        log.info("Booking API ready (backend=%s)", type(store).__name__)
        yield
        await store.close()

    app = FastAPI(
        title="Campus Classroom Booking",
        description="Classroom booking requests, conflict checks and review workflow",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.arbiter = arbiter

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        log.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(
            {"success": False, "message": exc.message},
            status_code=exc.status_code,
        )

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Classrooms ─────────────────────────────────────────────

    @app.get("/classrooms")
    async def list_classrooms(
        building: str | None = None,
        active: bool | None = None,
    ) -> JSONResponse:
        return _ok(await arbiter.list_classrooms(building=building, active=active))

    @app.get("/classrooms/availability")
    async def classroom_availability(
        date: str,
        start_time: str,
        end_time: str,
    ) -> JSONResponse:
        """Active classrooms with no confirmed booking in the range."""
        rooms = await arbiter.available_classrooms(date, start_time, end_time)
        return _ok({
            "available_classrooms": rooms,
            "time_range": {"date": date, "start_time": start_time, "end_time": end_time},
        })

    @app.get("/classrooms/{classroom_id}")
    async def get_classroom(classroom_id: str) -> JSONResponse:
        return _ok(await arbiter.get_classroom(classroom_id))

    @app.get("/classrooms/{classroom_id}/schedule")
    async def classroom_schedule(
        classroom_id: str,
        date: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> JSONResponse:
        classroom = await arbiter.get_classroom(classroom_id)
        bookings = await arbiter.schedule(
            classroom_id, date, start_date=start_date, end_date=end_date
        )
        return _ok({"classroom": classroom, "bookings": bookings})

    # ── Bookings ───────────────────────────────────────────────

    @app.post("/bookings")
    async def request_booking(
        body: BookingRequest,
        actor: Actor = Depends(get_actor),
    ) -> JSONResponse:
        authorize(actor, BookingAction.REQUEST)
        booking = await arbiter.request_booking(
            body.classroom_id,
            body.date,
            body.start_time,
            body.end_time,
            requested_by=actor.id,
            purpose=body.purpose,
        )
        return _ok(booking, status_code=201)

    @app.get("/bookings")
    async def list_bookings(
        classroom_id: str | None = None,
        date: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        status: BookingStatus | None = None,
        mine: bool = False,
        actor: Actor = Depends(get_actor),
    ) -> JSONResponse:
        bookings = await arbiter.list_bookings(
            classroom_id=classroom_id,
            date=date,
            start_date=start_date,
            end_date=end_date,
            status=status,
            requested_by=actor.id if mine else None,
        )
        return _ok(bookings)

    @app.post("/bookings/conflicts")
    async def check_conflicts(body: ConflictCheckRequest) -> JSONResponse:
        """Advisory only: the answer can be stale by the time a reviewer acts."""
        conflicts = await arbiter.conflicting_bookings(
            body.classroom_id,
            body.date,
            body.start_time,
            body.end_time,
            ignore_booking_id=body.ignore_booking_id,
        )
        return _ok({"conflict": bool(conflicts), "conflicting_bookings": conflicts})

    @app.get("/bookings/{booking_id}", dependencies=[Depends(get_actor)])
    async def get_booking(booking_id: str) -> JSONResponse:
        return _ok(await arbiter.get_booking(booking_id))

    @app.post("/bookings/{booking_id}/approve", dependencies=[Depends(require_reviewer_token)])
    async def approve_booking(booking_id: str, actor: Actor = Depends(get_actor)) -> JSONResponse:
        authorize(actor, BookingAction.APPROVE)
        return _ok(await arbiter.approve(booking_id, reviewer_id=actor.id))

    @app.post("/bookings/{booking_id}/reject", dependencies=[Depends(require_reviewer_token)])
    async def reject_booking(booking_id: str, actor: Actor = Depends(get_actor)) -> JSONResponse:
        authorize(actor, BookingAction.REJECT)
        return _ok(await arbiter.reject(booking_id, reviewer_id=actor.id))

    @app.post("/bookings/{booking_id}/cancel")
    async def cancel_booking(booking_id: str, actor: Actor = Depends(get_actor)) -> JSONResponse:
        booking = await arbiter.get_booking(booking_id)
        authorize(actor, BookingAction.CANCEL, booking)
        return _ok(await arbiter.cancel(booking_id))

    # ── Live booking feed ──────────────────────────────────────

    @app.websocket("/ws/classrooms/{classroom_id}/bookings")
    async def booking_feed(
        websocket: WebSocket,
        classroom_id: str,
        token: str = Query(default=""),
        since: float | None = Query(default=None),
    ) -> None:
        """Stream booking events for one classroom.

        ``since`` (Unix timestamp of the last event a client saw) replays the
        remembered events after it before live delivery starts.
        """
        if not await require_reviewer_ws(websocket, token):
            return
        if await store.get_classroom(classroom_id) is None:
            await websocket.close(code=4004, reason="Classroom not found")
            return

        broadcaster = get_broadcaster(classroom_id)
        queue = broadcaster.subscribe(since=since)
        await websocket.accept()

        forwarder = asyncio.create_task(_pump_events(websocket, queue, classroom_id))
        try:
            # Client messages are ignored; receiving only detects disconnect.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        except Exception as e:
            log.warning("Booking feed error for %s: %s", classroom_id, e)
        finally:
            forwarder.cancel()
            broadcaster.unsubscribe(queue)

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "campus_booking.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
