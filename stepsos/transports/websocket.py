"""WebSocket transport for the event feed."""

from __future__ import annotations

from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed as WSConnectionClosed
from websockets.exceptions import WebSocketException

from ..exceptions import StreamConnectionError
from .base import ABNORMAL_CLOSURE, NORMAL_CLOSURE, BaseConnection, BaseTransport, ConnectionClosed


class WebSocketConnection(BaseConnection):
    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket

    async def recv(self) -> str:
        try:
            message = await self._websocket.recv()
        except WSConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else ABNORMAL_CLOSURE
            reason = e.rcvd.reason if e.rcvd is not None else ""
            raise ConnectionClosed(code, reason) from e
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        return message

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        await self._websocket.close(code=code, reason=reason)


class WebSocketTransport(BaseTransport):
    """Opens event-feed connections with the ``websockets`` client."""

    async def connect(self, url: str) -> WebSocketConnection:
        try:
            websocket = await ws_connect(url)
        except (OSError, WebSocketException) as e:
            raise StreamConnectionError(f"WebSocket connection to {url} failed: {e}") from e
        return WebSocketConnection(websocket)
