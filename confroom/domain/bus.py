"""Synchronous in-process bus for booking events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from confroom.domain.events import BookingEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BookingEvent], None]


class EventBus:
    """Publish/subscribe bus for booking events.

    A handler subscribed to an event class also receives its subclasses, so
    subscribing to ``BookingEvent`` sees every lifecycle change. Handlers run
    synchronously inside the request that published the event, most specific
    class first and in registration order within a class.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[BookingEvent], list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[BookingEvent], handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def handlers_for(self, event: BookingEvent) -> list[Handler]:
        return [
            handler
            for cls in type(event).__mro__
            for handler in self._subscribers.get(cls, [])
        ]

    def publish(self, event: BookingEvent) -> None:
        handlers = self.handlers_for(event)
        logger.debug(
            "Publishing %s for %s to %d handler(s)",
            type(event).__name__,
            event.booking_number,
            len(handlers),
        )
        for handler in handlers:
            handler(event)
