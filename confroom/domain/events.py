"""Domain events emitted during the booking lifecycle.

Each event carries JSON snapshots of the booking before and after the
mutation plus the request context it happened in.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from confroom.domain.models import RequestContext


class BookingEvent(BaseModel):
    booking_id: str
    booking_number: str
    context: RequestContext
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


class BookingCreated(BookingEvent):
    """Fired when a new booking is persisted."""


class BookingUpdated(BookingEvent):
    """Fired when fields of a booking change, including a move to confirmed."""


class BookingCancelled(BookingEvent):
    """Fired when a booking is explicitly cancelled."""


class BookingCompleted(BookingEvent):
    """Fired when a confirmed booking's end has passed and it is completed."""


class BookingDeleted(BookingEvent):
    """Fired after a booking row is removed from the store."""
