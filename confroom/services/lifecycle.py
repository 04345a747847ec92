"""Booking lifecycle: creation, edits and status transitions.

    tentative ──► confirmed ──► completed
        │  ◄──────  │
        └─────┬─────┘
              ▼
          cancelled

``cancelled`` and ``completed`` are terminal. Any write that confirms a
booking, or moves any booking in time or space, goes through the conflict
checker first and then through the store's guarded write. Every
successful change publishes a domain event; the audit trail is recorded
by the handler registry listening on the bus.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from confroom.config import settings
from confroom.domain.bus import EventBus
from confroom.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from confroom.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingDeleted,
    BookingUpdated,
)
from confroom.domain.models import (
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    ConflictCandidate,
    ConflictResult,
    CreateBookingRequest,
    RequestContext,
    Room,
    UpdateBookingRequest,
    schedule_error,
)
from confroom.repos.memory import BookingRepository, RoomRepository
from confroom.services.conflicts import check_conflict
from confroom.services.pricing import compute_totals, price_line_items

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.TENTATIVE: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.TENTATIVE, BookingStatus.COMPLETED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

SCHEDULE_FIELDS = ("room_id", "start_date", "end_date", "start_time", "end_time")
NON_NULL_FIELDS = SCHEDULE_FIELDS + ("event_name", "status")

# Totals sent by clients are never trusted.
ADVISORY_FIELDS = frozenset({"total_amount", "final_amount"})

SYSTEM_CONTEXT = RequestContext(actor="system")


class BookingLifecycle:
    def __init__(
        self,
        bookings: BookingRepository,
        rooms: RoomRepository,
        bus: EventBus,
        clock: Callable[[], datetime] | None = None,
        complete_on_read: bool | None = None,
    ) -> None:
        self.bookings = bookings
        self.rooms = rooms
        self.bus = bus
        self.clock = clock or settings.local_now
        self.complete_on_read = (
            settings.complete_on_read if complete_on_read is None else complete_on_read
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("booking", booking_id)
        return booking

    def _bookable_room(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise NotFoundError("room", room_id)
        if not room.is_available:
            raise ValidationError(f"{room.name} is not available for booking", field="room_id")
        return room

    def _ensure_free(self, booking: Booking) -> ConflictCandidate:
        """Pre-check the booking's slot and return the guard for the store write."""
        candidate = ConflictCandidate.for_booking(booking)
        result = check_conflict(candidate, self.bookings.list_for_room(booking.room_id))
        if result.has_conflict:
            logger.warning(
                "Booking %s conflicts with %s in room %s",
                booking.booking_number or booking.id,
                result.conflicting_booking_number,
                booking.room_id,
            )
            raise ConflictError(result)
        return candidate

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check(self, candidate: ConflictCandidate) -> ConflictResult:
        """Advisory conflict check against the current store contents."""
        return check_conflict(candidate, self.bookings.list_for_room(candidate.room_id))

    def get(self, booking_id: str, now: datetime | None = None) -> Booking:
        booking = self._load(booking_id)
        if self.complete_on_read:
            booking = self.complete_if_elapsed(booking, now)
        return booking

    def list_bookings(self, now: datetime | None = None, **filters: Any) -> list[Booking]:
        """Filtered bookings, newest first; see ``BookingRepository.query``."""
        if self.complete_on_read:
            self.sweep(now)
        return self.bookings.query(**filters)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, request: CreateBookingRequest, context: RequestContext) -> Booking:
        if request.status not in (BookingStatus.TENTATIVE, BookingStatus.CONFIRMED):
            raise ValidationError(
                "New bookings must be tentative or confirmed", field="status"
            )
        if not request.client_id:
            raise ValidationError(
                "client_id is required. Please provide either client_id or client_email.",
                field="client_id",
            )
        self._bookable_room(request.room_id)

        line_items = price_line_items(request.line_items)
        totals = compute_totals(line_items, request.discount_amount)
        now = self.clock()

        booking = Booking(
            client_id=request.client_id,
            room_id=request.room_id,
            event_type_id=request.event_type_id,
            event_name=request.event_name,
            start_date=request.start_date,
            end_date=request.end_date,
            start_time=request.start_time,
            end_time=request.end_time,
            status=request.status,
            number_of_attendees=request.number_of_attendees,
            line_items=line_items,
            total_amount=totals.total_amount,
            discount_amount=request.discount_amount,
            final_amount=totals.final_amount,
            currency=request.currency or settings.default_currency,
            notes=request.notes,
            special_requirements=request.special_requirements,
            created_by=context.actor,
            updated_by=context.actor,
            created_at=now,
            updated_at=now,
        )

        guard = None
        if booking.status == BookingStatus.CONFIRMED:
            booking.confirmed_at = now
            booking.confirmed_by = context.actor
            guard = self._ensure_free(booking)

        stored = self.bookings.add(booking, guard=guard)
        logger.info(
            "Created %s booking %s in room %s", stored.status, stored.booking_number, stored.room_id
        )
        self.bus.publish(
            BookingCreated(
                booking_id=stored.id,
                booking_number=stored.booking_number,
                context=context,
                after=stored.snapshot(),
            )
        )
        return stored

    def update(
        self, booking_id: str, request: UpdateBookingRequest, context: RequestContext
    ) -> Booking:
        current = self._load(booking_id)
        updates = {
            name: getattr(request, name)
            for name in request.model_fields_set
            if name not in ADVISORY_FIELDS
        }
        for name in NON_NULL_FIELDS:
            if name in updates and updates[name] is None:
                raise ValidationError(f"{name} cannot be empty", field=name)

        status = updates.get("status", current.status)
        if status != current.status and status not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidTransitionError(current.status, status)
        if current.status in TERMINAL_STATUSES:
            raise ValidationError(
                f"{current.status.capitalize()} bookings cannot be modified", field="status"
            )

        schedule = {name: updates.get(name, getattr(current, name)) for name in SCHEDULE_FIELDS}
        error = schedule_error(
            schedule["start_date"], schedule["end_date"], schedule["start_time"], schedule["end_time"]
        )
        if error:
            raise ValidationError(error, field="end_date")
        if schedule["room_id"] != current.room_id:
            self._bookable_room(schedule["room_id"])

        if "line_items" in updates or "discount_amount" in updates:
            line_items = updates.get("line_items")
            if line_items is None:
                line_items = current.line_items
            line_items = price_line_items(line_items)
            discount = updates.get("discount_amount")
            if discount is None:
                discount = current.discount_amount
            totals = compute_totals(line_items, discount)
            updates.update(
                line_items=line_items,
                discount_amount=discount,
                total_amount=totals.total_amount,
                final_amount=totals.final_amount,
            )

        now = self.clock()
        if status == BookingStatus.CONFIRMED and current.status != BookingStatus.CONFIRMED:
            updates.update(confirmed_at=now, confirmed_by=context.actor)
        if status == BookingStatus.CANCELLED:
            reason = (updates.get("cancellation_reason") or "").strip()
            if not reason:
                raise ValidationError(
                    "cancellation_reason is required to cancel a booking",
                    field="cancellation_reason",
                )
            updates.update(
                cancellation_reason=reason, cancelled_at=now, cancelled_by=context.actor
            )
        updates.update(updated_at=now, updated_by=context.actor)
        updated = current.model_copy(update=updates)

        guard = None
        touches_schedule = any(name in updates for name in SCHEDULE_FIELDS)
        sets_confirmed = "status" in updates and status == BookingStatus.CONFIRMED
        if touches_schedule or sets_confirmed:
            guard = self._ensure_free(updated)

        before = current.snapshot()
        stored = self.bookings.replace(updated, guard=guard)
        if status == BookingStatus.CANCELLED:
            event_type, verb = BookingCancelled, "Cancelled"
        else:
            event_type, verb = BookingUpdated, "Updated"
        logger.info("%s booking %s", verb, stored.booking_number)
        self.bus.publish(
            event_type(
                booking_id=stored.id,
                booking_number=stored.booking_number,
                context=context,
                before=before,
                after=stored.snapshot(),
            )
        )
        return stored

    def confirm(self, booking_id: str, context: RequestContext) -> Booking:
        return self.update(
            booking_id, UpdateBookingRequest(status=BookingStatus.CONFIRMED), context
        )

    def cancel(self, booking_id: str, reason: str, context: RequestContext) -> Booking:
        current = self._load(booking_id)
        if current.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(current.status, BookingStatus.CANCELLED)
        return self.update(
            booking_id,
            UpdateBookingRequest(status=BookingStatus.CANCELLED, cancellation_reason=reason),
            context,
        )

    def delete(self, booking_id: str, context: RequestContext) -> Booking:
        removed = self.bookings.delete(booking_id)
        if removed is None:
            raise NotFoundError("booking", booking_id)
        logger.info("Deleted booking %s", removed.booking_number)
        self.bus.publish(
            BookingDeleted(
                booking_id=removed.id,
                booking_number=removed.booking_number,
                context=context,
                before=removed.snapshot(),
            )
        )
        return removed

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def complete_if_elapsed(self, booking: Booking, now: datetime | None = None) -> Booking:
        """Move a confirmed booking whose end is strictly past to completed.

        Idempotent: anything that is not confirmed, or has not ended yet, is
        returned unchanged.
        """
        now = now or self.clock()
        if booking.status != BookingStatus.CONFIRMED or booking.ends_at >= now:
            return booking

        completed = booking.model_copy(
            update={
                "status": BookingStatus.COMPLETED,
                "updated_at": now,
                "updated_by": SYSTEM_CONTEXT.actor,
            }
        )
        stored = self.bookings.replace(completed)
        logger.info("Completed booking %s", stored.booking_number)
        self.bus.publish(
            BookingCompleted(
                booking_id=stored.id,
                booking_number=stored.booking_number,
                context=SYSTEM_CONTEXT,
                before=booking.snapshot(),
                after=stored.snapshot(),
            )
        )
        return stored

    def sweep(self, now: datetime | None = None) -> list[Booking]:
        """Complete every confirmed booking that has ended; return those changed."""
        now = now or self.clock()
        completed = []
        for booking in self.bookings.list_by_status(BookingStatus.CONFIRMED):
            stored = self.complete_if_elapsed(booking, now)
            if stored is not booking:
                completed.append(stored)
        return completed
