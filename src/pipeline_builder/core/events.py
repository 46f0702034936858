"""EventBus — observer hub between the graph store, the view controller and the GUI."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

EventHandler = Callable[..., None]

# Event names published by the core.
STORE_CHANGED = "store_changed"
SELECTION_CHANGED = "selection_changed"
CONNECTION_PENDING = "connection_pending"
HISTORY_CHANGED = "history_changed"
VIEW_CHANGED = "view_changed"


class EventBus:
    """Publish/subscribe bus for store and view notifications.

    The graph store and the view controller publish through the bus; canvas,
    panels and the YAML preview subscribe independently of each other.
    """

    def __init__(self) -> None:
        """Initialise an empty event bus."""
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register *handler* for *event*.

        Args:
            event: The event name (e.g. ``STORE_CHANGED``).
            handler: Callable invoked with the event's keyword arguments.
        """
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Remove a previously registered handler.

        Args:
            event: The event name.
            handler: The handler to remove.
        """
        try:
            self._handlers[event].remove(handler)
        except ValueError:
            logger.warning("Handler %r was not subscribed to event %r", handler, event)

    def handler_count(self, event: str) -> int:
        """Return how many handlers are subscribed to *event*."""
        return len(self._handlers.get(event, []))

    def emit(self, event: str, **kwargs: Any) -> None:
        """Fire *event*, calling every subscribed handler.

        A handler that raises is logged and skipped so the remaining
        handlers still run.

        Args:
            event: The event name to fire.
            **kwargs: Data passed to each handler.
        """
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(**kwargs)
            except Exception:
                logger.exception("Error in handler %r for event %r", handler, event)
