"""Tests for client / event type find-or-create before booking creation."""

from datetime import date, time

import pytest

from confroom.domain.errors import NotFoundError
from confroom.domain.models import Client, CreateBookingRequest, EventType, RequestContext
from confroom.repos.memory import ClientRepository, EventTypeRepository
from confroom.services.resolution import resolve_references

CONTEXT = RequestContext(actor="front-desk")


@pytest.fixture()
def clients():
    return ClientRepository()


@pytest.fixture()
def event_types():
    return EventTypeRepository()


def _request(**overrides) -> CreateBookingRequest:
    defaults = dict(
        room_id="room-101",
        event_name="Annual general meeting",
        start_date=date(2025, 6, 2),
        end_date=date(2025, 6, 2),
        start_time=time(9, 0),
        end_time=time(11, 0),
    )
    defaults.update(overrides)
    return CreateBookingRequest(**defaults)


def test_new_client_is_created_from_email(clients, event_types):
    resolution = resolve_references(
        _request(
            client_email="events@acme.example",
            client_name="Tendai Moyo",
            company_name="Acme Holdings",
            client_phone="+263 77 000 0000",
        ),
        clients,
        event_types,
        CONTEXT,
    )

    assert resolution.client_created is True
    client = clients.get(resolution.request.client_id)
    assert client.organization_name == "Acme Holdings"
    assert client.contact_person == "Tendai Moyo"
    assert client.created_by == "front-desk"


def test_existing_client_is_matched_case_insensitively(clients, event_types):
    existing = Client(
        organization_name="Acme Holdings",
        contact_person="Tendai Moyo",
        email="Events@Acme.example",
    )
    clients.add(existing)

    resolution = resolve_references(
        _request(client_email="events@acme.example"), clients, event_types, CONTEXT
    )

    assert resolution.client_created is False
    assert resolution.request.client_id == existing.id
    assert len(clients._store) == 1


def test_unnamed_client_gets_placeholders(clients, event_types):
    resolution = resolve_references(
        _request(client_email="walkin@example.com"), clients, event_types, CONTEXT
    )
    client = clients.get(resolution.request.client_id)
    assert client.contact_person == "Unknown"
    assert client.organization_name == "walkin@example.com"


def test_explicit_client_id_must_exist(clients, event_types):
    with pytest.raises(NotFoundError):
        resolve_references(_request(client_id="ghost"), clients, event_types, CONTEXT)


def test_explicit_client_id_wins_over_email(clients, event_types):
    existing = Client(organization_name="Acme", contact_person="T", email="a@acme.example")
    clients.add(existing)

    resolution = resolve_references(
        _request(client_id=existing.id, client_email="other@acme.example"),
        clients,
        event_types,
        CONTEXT,
    )

    assert resolution.request.client_id == existing.id
    assert resolution.client_created is False
    assert clients.find_by_email("other@acme.example") is None


def test_event_type_is_found_or_created_by_name(clients, event_types):
    workshop = EventType(name="Workshop")
    event_types.add(workshop)

    found = resolve_references(_request(event_type="  workshop "), clients, event_types, CONTEXT)
    created = resolve_references(_request(event_type="Wedding"), clients, event_types, CONTEXT)

    assert found.request.event_type_id == workshop.id
    assert found.event_type_created is False
    assert created.event_type_created is True
    assert event_types.get(created.request.event_type_id).name == "Wedding"


def test_blank_event_type_is_ignored(clients, event_types):
    resolution = resolve_references(_request(event_type="   "), clients, event_types, CONTEXT)
    assert resolution.request.event_type_id is None
    assert event_types._store == {}


def test_nothing_to_resolve_leaves_request_untouched(clients, event_types):
    request = _request()
    resolution = resolve_references(request, clients, event_types, CONTEXT)
    assert resolution.request == request
    assert resolution.client_created is False
    assert resolution.event_type_created is False
