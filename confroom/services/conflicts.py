"""Service for detecting scheduling conflicts between room bookings."""

from __future__ import annotations

from datetime import date, time
from typing import Iterable

from confroom.domain.models import (
    Booking,
    BookingStatus,
    ConflictCandidate,
    ConflictResult,
)


def shared_days(
    start_a: date, end_a: date, start_b: date, end_b: date
) -> int:
    """Number of calendar days two inclusive date ranges have in common."""
    first = max(start_a, start_b)
    last = min(end_a, end_b)
    if last < first:
        return 0
    return (last - first).days + 1


def times_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Strict overlap: back-to-back ranges (end == start) do not overlap."""
    return start_a < end_b and end_a > start_b


def overlaps(candidate: ConflictCandidate, booking: Booking) -> bool:
    """Return True if the candidate occupies any of the booking's room time.

    Date ranges are inclusive on both ends. Sharing more than one calendar
    day is always an overlap; sharing exactly one day compares time of day.
    """
    days = shared_days(
        candidate.start_date, candidate.end_date, booking.start_date, booking.end_date
    )
    if days == 0:
        return False
    if days > 1:
        return True
    return times_overlap(
        candidate.start_time, candidate.end_time, booking.start_time, booking.end_time
    )


def blocking_bookings(
    candidate: ConflictCandidate, existing: Iterable[Booking]
) -> list[Booking]:
    """Bookings that can block the candidate: same room, confirmed, not excluded."""
    return [
        booking
        for booking in existing
        if booking.status == BookingStatus.CONFIRMED
        and booking.room_id == candidate.room_id
        and booking.id != candidate.exclude_booking_id
    ]


def check_conflict(
    candidate: ConflictCandidate, existing: Iterable[Booking]
) -> ConflictResult:
    """Decide whether the candidate overlaps a confirmed booking.

    Only confirmed bookings in the candidate's room take part; tentative,
    cancelled and completed bookings never block. The first overlapping
    booking in the order supplied is reported. Never raises for a
    well-formed candidate.
    """
    for booking in blocking_bookings(candidate, existing):
        if overlaps(candidate, booking):
            return ConflictResult.against(booking)
    return ConflictResult.clear()
