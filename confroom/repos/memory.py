"""In-memory repositories standing in for the managed relational store."""

from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal

from confroom.config import settings
from confroom.domain.errors import ConflictError, NotFoundError
from confroom.domain.models import (
    AuditAction,
    AuditEntry,
    Booking,
    BookingStatus,
    Client,
    ConflictCandidate,
    EventType,
    Room,
)
from confroom.services.conflicts import check_conflict


class BookingRepository:
    """Dict-backed store for Booking instances, keyed by id.

    ``add`` and ``replace`` accept an optional conflict guard that is checked
    and written under one lock, so two writers cannot both confirm the same
    slot. Callers may pre-check for a friendlier error, but the guarded
    write is what makes the rejection race-free.
    """

    def __init__(self, number_prefix: str | None = None) -> None:
        self._store: dict[str, Booking] = {}
        self._lock = threading.RLock()
        self._sequence = 0
        self._number_prefix = number_prefix or settings.booking_number_prefix

    def _next_booking_number(self, booking: Booking) -> str:
        self._sequence += 1
        return f"{self._number_prefix}-{booking.created_at:%Y}-{self._sequence:05d}"

    def _enforce(self, guard: ConflictCandidate | None) -> None:
        if guard is None:
            return
        result = check_conflict(guard, self.list_for_room(guard.room_id))
        if result.has_conflict:
            raise ConflictError(result)

    def add(self, booking: Booking, guard: ConflictCandidate | None = None) -> Booking:
        with self._lock:
            self._enforce(guard)
            if not booking.booking_number:
                booking.booking_number = self._next_booking_number(booking)
            self._store[booking.id] = booking
            return booking

    def replace(self, booking: Booking, guard: ConflictCandidate | None = None) -> Booking:
        with self._lock:
            if booking.id not in self._store:
                raise NotFoundError("booking", booking.id)
            self._enforce(guard)
            self._store[booking.id] = booking
            return booking

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def list_all(self) -> list[Booking]:
        return sorted(self._store.values(), key=lambda b: b.created_at)

    def list_for_room(self, room_id: str) -> list[Booking]:
        """Bookings for one room in creation order."""
        return [b for b in self.list_all() if b.room_id == room_id]

    def list_by_status(self, status: BookingStatus) -> list[Booking]:
        return [b for b in self.list_all() if b.status == status]

    def query(
        self,
        status: BookingStatus | None = None,
        room_id: str | None = None,
        client_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Booking]:
        """Filtered bookings, newest first."""
        results = []
        for booking in self._store.values():
            if status is not None and booking.status != status:
                continue
            if room_id is not None and booking.room_id != room_id:
                continue
            if client_id is not None and booking.client_id != client_id:
                continue
            if start_date is not None and booking.start_date < start_date:
                continue
            if end_date is not None and booking.end_date > end_date:
                continue
            results.append(booking)
        return sorted(results, key=lambda b: b.created_at, reverse=True)

    def delete(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._store.pop(booking_id, None)


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Room] = {}

    def add(self, room: Room) -> None:
        self._store[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    def list_all(self) -> list[Room]:
        return sorted(self._store.values(), key=lambda r: r.name)


class ClientRepository:
    """Dict-backed store for Client instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Client] = {}

    def add(self, client: Client) -> None:
        self._store[client.id] = client

    def get(self, client_id: str) -> Client | None:
        return self._store.get(client_id)

    def find_by_email(self, email: str) -> Client | None:
        wanted = email.strip().lower()
        for client in self._store.values():
            if client.email.lower() == wanted:
                return client
        return None


class EventTypeRepository:
    """Dict-backed store for EventType instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, EventType] = {}

    def add(self, event_type: EventType) -> None:
        self._store[event_type.id] = event_type

    def get(self, event_type_id: str) -> EventType | None:
        return self._store.get(event_type_id)

    def find_by_name(self, name: str) -> EventType | None:
        wanted = name.strip().lower()
        for event_type in self._store.values():
            if event_type.name.lower() == wanted:
                return event_type
        return None


class AuditRepository:
    """Append-only list of AuditEntry instances."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def list_entries(
        self,
        resource_type: str | None = None,
        resource_id: str | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
    ) -> list[AuditEntry]:
        """Matching entries, newest first."""
        matches = [
            e
            for e in reversed(self._entries)
            if (resource_type is None or e.resource_type == resource_type)
            and (resource_id is None or e.resource_id == resource_id)
            and (action is None or e.action == action)
        ]
        return matches[:limit]


# ---------------------------------------------------------------------------
# Seed data – a few rooms for local runs
# ---------------------------------------------------------------------------


def _seed_rooms(repo: RoomRepository) -> None:
    repo.add(
        Room(
            name="Room 101",
            capacity=40,
            rate_per_day=Decimal("250.00"),
            description="Boardroom with projector",
        )
    )
    repo.add(
        Room(
            name="Jacaranda Hall",
            capacity=300,
            rate_per_day=Decimal("1200.00"),
            description="Main conference hall, theatre layout",
        )
    )
    repo.add(
        Room(
            name="Msasa Room",
            capacity=20,
            rate_per_day=Decimal("150.00"),
            is_available=False,
        )
    )


def create_room_repository(seed: bool = True) -> RoomRepository:
    """Return a RoomRepository, pre-loaded with sample rooms when ``seed``."""
    repo = RoomRepository()
    if seed:
        _seed_rooms(repo)
    return repo
