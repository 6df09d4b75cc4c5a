"""
In-process Event Dispatcher

Domain services announce what happened (a validation was confirmed, expired,
or presented with an unknown id) without knowing who reacts. Subscribers are
registered per event type at startup and run synchronously, inside the
caller's database session, in descending priority order.

Exceptions raised by a subscriber propagate to whoever dispatched the event,
so a subscriber can abort the surrounding operation (e.g. refuse an account
confirmation for a deleted user).

Usage:
    from grantflow.core.events import dispatcher

    dispatcher.subscribe(ValidationConfirmedEvent, on_confirmed, priority=10)
    await dispatcher.dispatch(ValidationConfirmedEvent(...), db)
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any, AsyncSession], Awaitable[None]]


class EventDispatcher:
    """Registry of subscribers keyed by event class."""

    def __init__(self) -> None:
        self._subscribers: dict[type, list[tuple[int, Subscriber]]] = defaultdict(list)

    def subscribe(self, event_type: type, subscriber: Subscriber, priority: int = 0) -> None:
        """
        Register a subscriber for an event type.

        Registering the same subscriber twice for the same event is a no-op,
        so startup hooks may run more than once (e.g. in tests).
        """
        entries = self._subscribers[event_type]
        if any(existing is subscriber for _, existing in entries):
            return
        entries.append((priority, subscriber))
        entries.sort(key=lambda entry: entry[0], reverse=True)
        logger.debug(f"Subscribed {subscriber.__name__} to {event_type.__name__}")

    def subscribers_for(self, event_type: type) -> list[Subscriber]:
        return [subscriber for _, subscriber in self._subscribers.get(event_type, [])]

    async def dispatch(self, event: Any, db: AsyncSession) -> Any:
        """
        Run every subscriber of the event's type.

        Returns:
            The event, so subscribers may annotate it for the caller
        """
        for subscriber in self.subscribers_for(type(event)):
            await subscriber(event, db)
        return event

    def clear(self) -> None:
        self._subscribers.clear()


# Global dispatcher instance
dispatcher = EventDispatcher()
