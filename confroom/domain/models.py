"""Domain models for conference-room bookings."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from confroom.config import settings


class BookingStatus(StrEnum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


class AuditAction(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CANCEL = "CANCEL"
    APPROVE = "APPROVE"


Currency = Literal["USD", "ZWG"]


def _now() -> datetime:
    return settings.local_now()


def _new_id() -> str:
    return str(uuid.uuid4())


def schedule_error(
    start_date: date, end_date: date, start_time: time, end_time: time
) -> str | None:
    """Return why a date/time span is invalid, or ``None`` when it is fine."""
    if end_date < start_date:
        return "End date must be after or equal to start date"
    if start_date == end_date and end_time <= start_time:
        return "End time must be after start time for same-day bookings"
    return None


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class Room(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=1)
    rate_per_day: Decimal = Field(ge=0)
    description: str | None = None
    is_available: bool = True


class Client(BaseModel):
    id: str = Field(default_factory=_new_id)
    organization_name: str
    contact_person: str
    email: str
    phone: str = ""
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_now)


class EventType(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class LineItem(BaseModel):
    """A priced component of a booking: room rental, add-on or service.

    ``amount`` is whatever the client sent; the server recomputes it.
    """

    description: str = ""
    quantity: Decimal
    rate: Decimal
    amount: Decimal | None = None


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    booking_number: str = ""
    client_id: str | None = None
    room_id: str
    event_type_id: str | None = None
    event_name: str
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    status: BookingStatus = BookingStatus.TENTATIVE
    number_of_attendees: int | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    final_amount: Decimal = Decimal("0")
    currency: str = "USD"
    notes: str | None = None
    special_requirements: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _valid_schedule(self) -> Booking:
        error = schedule_error(
            self.start_date, self.end_date, self.start_time, self.end_time
        )
        if error:
            raise ValueError(error)
        return self

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.end_date, self.end_time)

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of every field, used for audit before/after state."""
        return self.model_dump(mode="json")


class ConflictCandidate(BaseModel):
    """A proposed occupancy of one room, tested against confirmed bookings."""

    room_id: str
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    exclude_booking_id: str | None = None

    @model_validator(mode="after")
    def _valid_schedule(self) -> ConflictCandidate:
        error = schedule_error(
            self.start_date, self.end_date, self.start_time, self.end_time
        )
        if error:
            raise ValueError(error)
        return self

    @classmethod
    def for_booking(cls, booking: Booking, exclude_self: bool = True) -> ConflictCandidate:
        return cls(
            room_id=booking.room_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            exclude_booking_id=booking.id if exclude_self else None,
        )


class ConflictResult(BaseModel):
    has_conflict: bool
    conflicting_booking_id: str | None = None
    conflicting_booking_number: str | None = None
    conflicting_event_name: str | None = None
    conflicting_booking: Booking | None = Field(default=None, exclude=True)

    @classmethod
    def clear(cls) -> ConflictResult:
        return cls(has_conflict=False)

    @classmethod
    def against(cls, booking: Booking) -> ConflictResult:
        return cls(
            has_conflict=True,
            conflicting_booking_id=booking.id,
            conflicting_booking_number=booking.booking_number,
            conflicting_event_name=booking.event_name,
            conflicting_booking=booking,
        )


class Totals(BaseModel):
    total_amount: Decimal
    final_amount: Decimal


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


class FieldChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    before: Any = None
    after: Any = None


class RequestContext(BaseModel):
    """Who is acting and through which request; passed into every mutation."""

    model_config = ConfigDict(frozen=True)

    actor: str = "system"
    ip_address: str | None = None
    user_agent: str | None = None
    method: str | None = None
    path: str | None = None


class AuditEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    action: AuditAction
    resource_type: str
    resource_id: str
    resource_name: str | None = None
    description: str = ""
    changes: dict[str, FieldChange] = Field(default_factory=dict)
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    actor: str
    timestamp: datetime = Field(default_factory=_now)
    ip_address: str | None = None
    user_agent: str | None = None
    request_method: str | None = None
    request_path: str | None = None
    status: str = "success"


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateBookingRequest(BaseModel):
    client_id: str | None = None
    room_id: str
    event_type_id: str | None = None
    event_name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    status: BookingStatus = BookingStatus.TENTATIVE
    number_of_attendees: int | None = Field(default=None, ge=1)
    line_items: list[LineItem] = Field(default_factory=list)
    discount_amount: Decimal = Decimal("0")
    currency: Currency | None = None
    notes: str | None = Field(default=None, max_length=1000)
    special_requirements: str | None = Field(default=None, max_length=1000)

    # Advisory only; always recomputed from line items.
    total_amount: Decimal | None = None
    final_amount: Decimal | None = None

    # Used by the find-or-create step when ids are missing.
    client_name: str | None = None
    company_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    event_type: str | None = None

    @model_validator(mode="after")
    def _valid_schedule(self) -> CreateBookingRequest:
        error = schedule_error(
            self.start_date, self.end_date, self.start_time, self.end_time
        )
        if error:
            raise ValueError(error)
        return self


class UpdateBookingRequest(BaseModel):
    """Partial update; only fields that were explicitly sent are applied."""

    client_id: str | None = None
    room_id: str | None = None
    event_type_id: str | None = None
    event_name: str | None = Field(default=None, min_length=1, max_length=200)
    start_date: date | None = None
    end_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    status: BookingStatus | None = None
    number_of_attendees: int | None = Field(default=None, ge=1)
    line_items: list[LineItem] | None = None
    discount_amount: Decimal | None = None
    currency: Currency | None = None
    notes: str | None = Field(default=None, max_length=1000)
    special_requirements: str | None = Field(default=None, max_length=1000)
    cancellation_reason: str | None = None
    total_amount: Decimal | None = None
    final_amount: Decimal | None = None


class CancelBookingRequest(BaseModel):
    reason: str


class BookingCreateResponse(BaseModel):
    booking: Booking
    client_created: bool = False
    event_type_created: bool = False


class BookingPage(BaseModel):
    items: list[Booking]
    total: int
    page: int
    limit: int
    total_pages: int
