"""
Event bus for client events.

Synchronous in-process pub/sub. Handlers execute immediately in the same
thread as the publisher. Handler errors are logged but never propagate:
observers must not change the outcome of the operation that published.
"""

import logging
from typing import Callable, Dict, List

from core.events import ClientEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for client events.

    Subscribe by event class name (string), publish by event instance.
    Handlers are called synchronously in subscription order. Subscribing
    to "*" receives every event.
    """

    WILDCARD = "*"

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable):
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Name of event class to subscribe to (e.g. 'SignedOut'),
                or "*" for all events
            callback: Function to call when event is published
        """
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> bool:
        """Remove a callback. Returns False if it was not subscribed."""
        callbacks = self._subscribers.get(event_type, [])
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def publish(self, event: ClientEvent):
        """
        Publish an event to all subscribers of that type.

        Args:
            event: ClientEvent instance to publish
        """
        event_type = event.__class__.__name__
        callbacks = self._subscribers.get(event_type, []) + self._subscribers.get(
            self.WILDCARD, []
        )

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
