"""FastAPI application — entry point for the conference-room booking service."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from confroom.config import settings
from confroom.domain.bus import EventBus
from confroom.domain.errors import BookingError, ConflictError, ErrorCode, ValidationError
from confroom.domain.handlers import HandlerRegistry
from confroom.domain.models import (
    AuditAction,
    AuditEntry,
    Booking,
    BookingCreateResponse,
    BookingPage,
    BookingStatus,
    CancelBookingRequest,
    ConflictCandidate,
    ConflictResult,
    CreateBookingRequest,
    RequestContext,
    Room,
    UpdateBookingRequest,
)
from confroom.repos.memory import (
    AuditRepository,
    BookingRepository,
    ClientRepository,
    EventTypeRepository,
    create_room_repository,
)
from confroom.services.audit import AuditTrailRecorder
from confroom.services.lifecycle import BookingLifecycle
from confroom.services.resolution import resolve_references

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# ── Stores (created at import time for simplicity) ────────────────────
event_bus = EventBus()
booking_repo = BookingRepository()
room_repo = create_room_repository(seed=settings.seed_sample_data)
client_repo = ClientRepository()
event_type_repo = EventTypeRepository()
audit_repo = AuditRepository()

audit_recorder = AuditTrailRecorder(audit_repo)
handler_registry = HandlerRegistry(bus=event_bus, recorder=audit_recorder)
lifecycle = BookingLifecycle(bookings=booking_repo, rooms=room_repo, bus=event_bus)


# ── Request context ───────────────────────────────────────────────────


def request_context(
    request: Request, x_user_id: str | None = Header(default=None)
) -> RequestContext:
    """Collect who is calling and from where, for the audit trail."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip") or (
            request.client.host if request.client else None
        )
    return RequestContext(
        actor=x_user_id or "anonymous",
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
        method=request.method,
        path=request.url.path,
    )


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    body: dict = {"detail": exc.message, "code": exc.code.value}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if isinstance(exc, ConflictError):
        body.update(exc.result.model_dump(mode="json"))
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(str(error.get("msg", "")) for error in errors) or "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "detail": detail,
            "code": ErrorCode.VALIDATION_ERROR.value,
            "errors": jsonable_encoder(errors),
        },
    )


# ── Routes: rooms ─────────────────────────────────────────────────────


@app.get("/rooms", response_model=list[Room])
def list_rooms() -> list[Room]:
    return room_repo.list_all()


@app.post("/rooms", response_model=Room, status_code=201)
def create_room(room: Room) -> Room:
    room_repo.add(room)
    logger.info("Registered room %s (%s)", room.name, room.id)
    return room


# ── Routes: bookings ──────────────────────────────────────────────────


@app.get("/bookings", response_model=BookingPage)
def list_bookings(
    status: BookingStatus | None = None,
    room_id: str | None = None,
    client_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> BookingPage:
    """Return bookings matching the filters, newest first."""
    matches = lifecycle.list_bookings(
        status=status,
        room_id=room_id,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
    )
    offset = (page - 1) * limit
    return BookingPage(
        items=matches[offset : offset + limit],
        total=len(matches),
        page=page,
        limit=limit,
        total_pages=math.ceil(len(matches) / limit),
    )


@app.post("/bookings", response_model=BookingCreateResponse, status_code=201)
def create_booking(
    payload: CreateBookingRequest,
    context: RequestContext = Depends(request_context),
) -> BookingCreateResponse:
    """Resolve client / event type references, then create the booking."""
    resolution = resolve_references(payload, client_repo, event_type_repo, context)
    booking = lifecycle.create(resolution.request, context)
    return BookingCreateResponse(
        booking=booking,
        client_created=resolution.client_created,
        event_type_created=resolution.event_type_created,
    )


@app.post("/bookings/check-conflict", response_model=ConflictResult)
def check_booking_conflict(candidate: ConflictCandidate) -> ConflictResult:
    """Advisory check: would this slot overlap a confirmed booking?"""
    return lifecycle.check(candidate)


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    return lifecycle.get(booking_id)


@app.put("/bookings/{booking_id}", response_model=Booking)
def update_booking(
    booking_id: str,
    payload: UpdateBookingRequest,
    context: RequestContext = Depends(request_context),
) -> Booking:
    return lifecycle.update(booking_id, payload, context)


@app.post("/bookings/{booking_id}/confirm", response_model=Booking)
def confirm_booking(
    booking_id: str, context: RequestContext = Depends(request_context)
) -> Booking:
    return lifecycle.confirm(booking_id, context)


@app.post("/bookings/{booking_id}/cancel", response_model=Booking)
def cancel_booking(
    booking_id: str,
    payload: CancelBookingRequest,
    context: RequestContext = Depends(request_context),
) -> Booking:
    return lifecycle.cancel(booking_id, payload.reason, context)


@app.delete("/bookings/{booking_id}")
def delete_booking(
    booking_id: str, context: RequestContext = Depends(request_context)
) -> dict:
    removed = lifecycle.delete(booking_id, context)
    return {"status": "deleted", "booking_number": removed.booking_number}


@app.post("/tick")
def tick(now: datetime | None = None) -> dict:
    """Complete every confirmed booking whose end has passed.

    Pass *now* as a query param to control the clock; defaults to the
    current local time in the operating timezone. An offset-aware *now* is
    converted to local wall-clock time first.
    """
    if now is not None and now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    current_time = now or lifecycle.clock()
    completed = lifecycle.sweep(current_time)
    return {
        "time": current_time.isoformat(),
        "completed": [booking.booking_number for booking in completed],
    }


# ── Routes: audit trail ───────────────────────────────────────────────


@app.get("/audit-logs", response_model=list[AuditEntry])
def list_audit_logs(
    resource_type: str | None = None,
    resource_id: str | None = None,
    action: AuditAction | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[AuditEntry]:
    return audit_repo.list_entries(
        resource_type=resource_type,
        resource_id=resource_id,
        action=action,
        limit=limit,
    )
