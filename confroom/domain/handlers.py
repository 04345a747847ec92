"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

from confroom.domain.bus import EventBus
from confroom.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingDeleted,
    BookingEvent,
    BookingUpdated,
)
from confroom.domain.models import AuditAction, BookingStatus
from confroom.services.audit import AuditTrailRecorder

RESOURCE_BOOKING = "booking"


class HandlerRegistry:
    """Wires booking lifecycle events to the audit trail."""

    def __init__(self, bus: EventBus, recorder: AuditTrailRecorder) -> None:
        self.bus = bus
        self.recorder = recorder
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCreated, self.on_booking_created)
        self.bus.subscribe(BookingUpdated, self.on_booking_updated)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(BookingCompleted, self.on_booking_completed)
        self.bus.subscribe(BookingDeleted, self.on_booking_deleted)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _record(self, event: BookingEvent, action: AuditAction, description: str) -> None:
        self.recorder.record(
            action=action,
            resource_type=RESOURCE_BOOKING,
            resource_id=event.booking_id,
            before=event.before,
            after=event.after,
            context=event.context,
            resource_name=event.booking_number,
            description=description,
        )

    def on_booking_created(self, event: BookingCreated) -> None:
        event_name = (event.after or {}).get("event_name")
        self._record(
            event,
            AuditAction.CREATE,
            f"Created booking {event.booking_number} ({event_name})",
        )

    def on_booking_updated(self, event: BookingUpdated) -> None:
        before_status = (event.before or {}).get("status")
        after_status = (event.after or {}).get("status")
        if after_status == BookingStatus.CONFIRMED and before_status != after_status:
            self._record(
                event, AuditAction.APPROVE, f"Confirmed booking {event.booking_number}"
            )
            return
        self._record(event, AuditAction.UPDATE, f"Updated booking {event.booking_number}")

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        reason = (event.after or {}).get("cancellation_reason")
        self._record(
            event,
            AuditAction.CANCEL,
            f"Cancelled booking {event.booking_number}: {reason}",
        )

    def on_booking_completed(self, event: BookingCompleted) -> None:
        self._record(
            event,
            AuditAction.UPDATE,
            f"Completed booking {event.booking_number} after its end time",
        )

    def on_booking_deleted(self, event: BookingDeleted) -> None:
        self._record(event, AuditAction.DELETE, f"Deleted booking {event.booking_number}")
