"""
Ordered event bus for push channel events.

Delivers each event to its handlers in registration order, awaiting
async handlers before moving on, so one event is fully handled before
the next one starts.
"""

import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from arbclient.core.types import ChannelEvent


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Event:
    """Inbound channel event with its raw payload."""

    type: ChannelEvent
    payload: Any
    timestamp_ms: int = 0
    sequence: int = 0


# Handlers may be plain callables or coroutine functions
EventHandler = Callable[[Event], Awaitable[None] | None]


class EventBus:
    """
    Publish/subscribe registry keyed by channel event.

    Features:
    - Sync and async handlers behind one interface
    - Registration-order delivery
    - Error isolation per handler
    """

    def __init__(self) -> None:
        """Initialize event bus."""
        self._handlers: dict[ChannelEvent, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: ChannelEvent, handler: EventHandler) -> None:
        """
        Register a handler for an event type.

        Args:
            event_type: Event type to handle.
            handler: Sync or async handler function.
        """
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: ChannelEvent, handler: EventHandler) -> bool:
        """
        Unregister a handler.

        Returns:
            True if handler was found and removed.
        """
        handlers = self._handlers[event_type]
        for i, registered in enumerate(handlers):
            if registered is handler:
                handlers.pop(i)
                return True
        return False

    async def publish(self, event: Event) -> None:
        """
        Deliver an event to every handler, one after another.

        A failing handler is logged and does not stop delivery to the rest.
        """
        for handler in list(self._handlers[event.type]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Handler error for {event.type.value}")

    def clear(self, event_type: ChannelEvent | None = None) -> None:
        """
        Clear handlers.

        Args:
            event_type: Specific type to clear, or None for all.
        """
        if event_type:
            self._handlers[event_type].clear()
        else:
            self._handlers.clear()

    def handler_count(self, event_type: ChannelEvent | None = None) -> int:
        """Get number of handlers for one event type, or for all of them."""
        if event_type is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers[event_type])
