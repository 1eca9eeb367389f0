"""In-memory transport for tests and in-process subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, Iterable, List, Literal, Optional, Union

from ..bus import EventBus
from ..contracts import StreamEvent
from ..exceptions import StreamConnectionError
from .base import ABNORMAL_CLOSURE, NORMAL_CLOSURE, BaseConnection, BaseTransport, ConnectionClosed

logger = logging.getLogger(__name__)

Outcome = Literal["accept", "fail", "hang"]


class _Close:
    def __init__(self, code: int, reason: str) -> None:
        self.code = code
        self.reason = reason


class InMemoryConnection(BaseConnection):
    """Queue-backed connection; tests push frames and drop the link."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Union[str, _Close]]" = asyncio.Queue()
        self.closed = False
        self.close_code: Optional[int] = None
        self._on_close: List[Callable[[], None]] = []

    def push(self, frame: Union[str, StreamEvent]) -> None:
        """Deliver a frame to the reader."""
        if isinstance(frame, StreamEvent):
            frame = frame.to_json()
        self._queue.put_nowait(frame)

    def drop(self, code: int = ABNORMAL_CLOSURE, reason: str = "") -> None:
        """Close from the server side."""
        self._finish(code, reason)

    async def recv(self) -> str:
        item = await self._queue.get()
        if isinstance(item, _Close):
            raise ConnectionClosed(item.code, item.reason)
        return item

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        self._finish(code, reason)

    def _finish(self, code: int, reason: str) -> None:
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        for callback in self._on_close:
            callback()
        self._queue.put_nowait(_Close(code, reason))


class InMemoryTransport(BaseTransport):
    """Scripted transport.

    Each ``connect`` consumes the next outcome from ``script``; once the
    script is exhausted every attempt is accepted. When ``bus`` is given,
    accepted connections receive a ``connected`` greeting followed by every
    event published on that bus.
    """

    def __init__(
        self, script: Optional[Iterable[Outcome]] = None, bus: Optional[EventBus] = None
    ) -> None:
        self.script: Deque[Outcome] = deque(script or [])
        self.connections: List[InMemoryConnection] = []
        self.attempts = 0
        self._bus = bus

    async def connect(self, url: str) -> InMemoryConnection:
        self.attempts += 1
        outcome = self.script.popleft() if self.script else "accept"
        if outcome == "fail":
            raise StreamConnectionError(f"Connection to {url} refused")
        if outcome == "hang":
            await asyncio.Event().wait()

        connection = InMemoryConnection()
        self.connections.append(connection)
        if self._bus is not None:
            connection.push(
                StreamEvent(event="connected", data={"message": "Connected to StepsOS"})
            )
            unsubscribe = self._bus.subscribe(connection.push)
            connection._on_close.append(unsubscribe)
        logger.debug(f"In-memory connection {len(self.connections)} opened to {url}")
        return connection
