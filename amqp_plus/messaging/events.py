"""
Lifecycle event relay.

Transport callbacks are re-emitted to local listeners under a fixed
vocabulary:

- ``connect``: ``connection``, ``url``
- ``disconnect``: ``error``
- ``channel:connect``
- ``channel:error``: ``error``, ``name``
- ``channel:close``
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from amqp_plus.config.logging import get_logger

logger = get_logger(__name__)

CONNECT = "connect"
DISCONNECT = "disconnect"
CHANNEL_CONNECT = "channel:connect"
CHANNEL_ERROR = "channel:error"
CHANNEL_CLOSE = "channel:close"

EVENTS = frozenset({CONNECT, DISCONNECT, CHANNEL_CONNECT, CHANNEL_ERROR, CHANNEL_CLOSE})

Listener = Callable[..., Any]


class EventRegistry:
    """Registry of lifecycle listeners keyed by event name."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        """
        Register a listener.

        Args:
            event: Event name
            listener: Callable invoked with the event payload as keyword arguments

        Returns:
            The registered listener

        Raises:
            ValueError: If the event name is not part of the vocabulary
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown event '{event}'")
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove a previously registered listener, if present."""
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, **payload: Any) -> None:
        """
        Deliver an event to every listener registered for it.

        A listener that raises is logged and skipped.

        Args:
            event: Event name
            **payload: Event payload
        """
        for listener in self.listeners(event):
            try:
                listener(**payload)
            except Exception as e:
                logger.error("event_listener_failed", lifecycle_event=event, error=str(e))
