"""Service for resolving the client and event type a new booking refers to.

Booking forms may name a client by email and an event type by name instead
of by id. Resolution runs as its own step before the lifecycle so that any
reference rows it creates are visible to the caller.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from confroom.domain.errors import NotFoundError
from confroom.domain.models import Client, CreateBookingRequest, EventType, RequestContext
from confroom.repos.memory import ClientRepository, EventTypeRepository

logger = logging.getLogger(__name__)


class Resolution(NamedTuple):
    request: CreateBookingRequest
    client_created: bool
    event_type_created: bool


def resolve_client(
    repo: ClientRepository,
    email: str,
    context: RequestContext,
    contact_person: str | None = None,
    organization_name: str | None = None,
    phone: str | None = None,
) -> tuple[Client, bool]:
    """Find a client by email or create one. Returns ``(client, created)``."""
    existing = repo.find_by_email(email)
    if existing is not None:
        return existing, False

    client = Client(
        contact_person=contact_person or "Unknown",
        organization_name=organization_name or email or "Unknown Organization",
        email=email.strip(),
        phone=phone or "",
        created_by=context.actor,
    )
    repo.add(client)
    logger.info("Created client %s for %s", client.id, client.email)
    return client, True


def resolve_event_type(
    repo: EventTypeRepository, name: str, context: RequestContext
) -> tuple[EventType, bool]:
    """Find an event type by case-insensitive name or create one."""
    existing = repo.find_by_name(name)
    if existing is not None:
        return existing, False

    event_type = EventType(name=name.strip(), created_by=context.actor)
    repo.add(event_type)
    logger.info("Created event type %r", event_type.name)
    return event_type, True


def resolve_references(
    request: CreateBookingRequest,
    clients: ClientRepository,
    event_types: EventTypeRepository,
    context: RequestContext,
) -> Resolution:
    """Fill in ``client_id`` and ``event_type_id`` on a create request.

    Explicit ids win and must exist. A missing ``client_id`` is resolved from
    ``client_email``; a missing ``event_type_id`` from ``event_type``. When
    neither form is given the field is left empty for the lifecycle to judge.
    """
    updates: dict[str, str] = {}
    client_created = event_type_created = False

    if request.client_id:
        if clients.get(request.client_id) is None:
            raise NotFoundError("client", request.client_id)
    elif request.client_email:
        client, client_created = resolve_client(
            clients,
            request.client_email,
            context,
            contact_person=request.client_name,
            organization_name=request.company_name,
            phone=request.client_phone,
        )
        updates["client_id"] = client.id

    if request.event_type_id:
        if event_types.get(request.event_type_id) is None:
            raise NotFoundError("event_type", request.event_type_id)
    elif request.event_type and request.event_type.strip():
        event_type, event_type_created = resolve_event_type(
            event_types, request.event_type, context
        )
        updates["event_type_id"] = event_type.id

    return Resolution(
        request=request.model_copy(update=updates),
        client_created=client_created,
        event_type_created=event_type_created,
    )
