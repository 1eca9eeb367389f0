"""In-process publish/subscribe hub for lifecycle events."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .contracts import StreamEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[StreamEvent], None]


class EventBus:
    """Fan out each published event to every registered listener.

    Delivery is synchronous in the publisher's control flow. There is no
    back-pressure and no replay: a listener that needs buffering does it on
    its own side, and an event published while nobody listens is gone.
    """

    def __init__(self) -> None:
        self._listeners: List[EventListener] = []
        self._lock = threading.Lock()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            self._remove(listener)

        return unsubscribe

    def _remove(self, listener: EventListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def publish(
        self, event: str, data: Optional[Dict[str, Any]] = None
    ) -> StreamEvent:
        """Build a timestamped event and deliver it to current listeners."""
        stream_event = StreamEvent(event=event, data=data or {})
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(stream_event)
            except Exception as e:
                logger.error(
                    f"Listener {listener!r} failed on {event}: {e}. Dropping it."
                )
                self._remove(listener)
        return stream_event

    def clear(self) -> None:
        """Drop every listener."""
        with self._lock:
            self._listeners.clear()
