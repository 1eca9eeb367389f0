"""Transport factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import StepsOSConfig, load_config
from .base import BaseConnection, BaseTransport, ConnectionClosed
from .inmemory import InMemoryConnection, InMemoryTransport


def get_transport(
    backend: Optional[str] = None, config: Optional[StepsOSConfig] = None
) -> BaseTransport:
    """Factory function to get the configured event-feed transport."""

    config = config or load_config()
    backend = (
        backend or os.getenv("STEPSOS_TRANSPORT") or config.stream.transport
    ).lower()

    if backend == "inmemory":
        return InMemoryTransport()
    elif backend == "websocket":
        from .websocket import WebSocketTransport

        return WebSocketTransport()
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = [
    "BaseConnection",
    "BaseTransport",
    "ConnectionClosed",
    "InMemoryConnection",
    "InMemoryTransport",
    "get_transport",
]
