"""Base transport interface for the client side of the event feed."""

from __future__ import annotations

import abc

from ..exceptions import TransportError

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class ConnectionClosed(TransportError):
    """The peer closed the connection."""

    def __init__(self, code: int = ABNORMAL_CLOSURE, reason: str = "") -> None:
        super().__init__(f"Connection closed (code: {code}, reason: {reason})")
        self.code = code
        self.reason = reason

    @property
    def clean(self) -> bool:
        return self.code == NORMAL_CLOSURE


class BaseConnection(metaclass=abc.ABCMeta):
    """One open duplex connection to the event feed."""

    @abc.abstractmethod
    async def recv(self) -> str:
        """Return the next text frame.

        Raises:
            ConnectionClosed: The connection is closed.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection."""
        raise NotImplementedError


class BaseTransport(metaclass=abc.ABCMeta):
    """Opens connections to the event feed."""

    @abc.abstractmethod
    async def connect(self, url: str) -> BaseConnection:
        """Open a connection to ``url`` or raise."""
        raise NotImplementedError
