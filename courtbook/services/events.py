"""Publish/subscribe channel shared by a booking session and its views."""
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class BookingEvent(str, Enum):
    """Signals passed between booking components."""

    BOOKING_CANCELLED = "booking_cancelled"
    REFRESH_REQUESTED = "refresh_requested"
    BOOKING_CREATED = "booking_created"


Handler = Callable[..., Any]


class EventChannel:
    """Explicit event channel owned by a session.

    Handlers may be plain callables or coroutine functions. They run in
    registration order; one failing handler does not stop the rest.
    """

    def __init__(self):
        self._handlers: Dict[BookingEvent, List[Handler]] = {}

    def subscribe(self, event: BookingEvent, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a function that removes it."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe():
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, event: BookingEvent) -> int:
        return len(self._handlers.get(event, []))

    async def publish(self, event: BookingEvent, **payload: Any) -> None:
        """Deliver an event to every subscriber."""
        handlers = list(self._handlers.get(event, []))
        logger.debug(f"Publishing {event.value} to {len(handlers)} handler(s)")

        for handler in handlers:
            try:
                result = handler(**payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Handler for {event.value} failed: {e}", exc_info=True)
