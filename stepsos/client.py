"""Reconnecting subscriber for the StepsOS event feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Literal, Optional

from .config import StepsOSConfig, load_config
from .contracts import StreamEvent
from .exceptions import StreamConnectionError
from .transports import BaseConnection, BaseTransport, ConnectionClosed, get_transport
from .transports.base import NORMAL_CLOSURE
from .utils.retry import compute_backoff

logger = logging.getLogger(__name__)

ConnectionState = Literal["disconnected", "connecting", "connected", "error"]
EventListener = Callable[[StreamEvent], None]
StateListener = Callable[[ConnectionState], None]


class StreamClient:
    """One logical connection to the event feed, shared by every listener.

    Construct one per process and hand it to whoever needs events. The
    first ``subscribe`` starts connecting; unsubscribing never closes the
    connection. Abnormal closures and failed attempts reconnect after
    ``base_delay * 2 ** (attempt - 1)`` seconds, up to ``max_attempts``
    times, after which the client stays in ``error`` until
    ``reset_attempts`` and an explicit ``connect``.
    """

    def __init__(
        self,
        transport: BaseTransport,
        url: str,
        base_delay: float = 1.0,
        max_attempts: int = 5,
        connect_timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._url = url
        self._base_delay = base_delay
        self._max_attempts = max_attempts
        self._connect_timeout = connect_timeout
        self._sleep = sleep

        self._listeners: List[EventListener] = []
        self._state_listeners: List[StateListener] = []
        self._state: ConnectionState = "disconnected"
        self._connection: Optional[BaseConnection] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._auto_connect_task: Optional[asyncio.Task] = None
        self._attempts = 0
        self._closing = False

    @classmethod
    def from_config(
        cls, config: Optional[StepsOSConfig] = None, transport: Optional[BaseTransport] = None
    ) -> "StreamClient":
        config = config or load_config()
        return cls(
            transport or get_transport(config=config),
            config.stream.url,
            base_delay=config.stream.base_delay,
            max_attempts=config.stream.max_attempts,
            connect_timeout=config.stream.connect_timeout,
        )

    # ------------------------------------------------------------------
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == "connected"

    @property
    def attempts(self) -> int:
        return self._attempts

    def _set_state(self, state: ConnectionState) -> None:
        if self._state == state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"StreamClient state listener error: {e}")

    # ------------------------------------------------------------------
    async def connect(self) -> None:
        """Resolve once connected; concurrent callers share one attempt.

        Raises:
            StreamConnectionError: The attempt timed out or failed.
        """
        if self._state == "connected":
            return
        if self._connect_task is None or self._connect_task.done():
            self._closing = False
            self._connect_task = asyncio.create_task(self._open())
        await asyncio.shield(self._connect_task)

    async def _open(self) -> None:
        self._set_state("connecting")
        logger.info(f"StreamClient: connecting to {self._url}")
        try:
            connection = await asyncio.wait_for(
                self._transport.connect(self._url), self._connect_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("StreamClient: connection timeout")
            self._attempt_failed()
            raise StreamConnectionError("Connection timeout") from e
        except StreamConnectionError as e:
            logger.error(f"StreamClient: connection failed: {e}")
            self._attempt_failed()
            raise
        except Exception as e:
            logger.error(f"StreamClient: connection failed: {e}")
            self._attempt_failed()
            raise StreamConnectionError(f"Connection failed: {e}") from e

        if self._closing:
            await connection.close(NORMAL_CLOSURE, "Manual disconnect")
            raise StreamConnectionError("Disconnected")

        self._connection = connection
        self._attempts = 0
        self._set_state("connected")
        logger.info("StreamClient: connected")
        self._reader_task = asyncio.create_task(self._read(connection))

    def _attempt_failed(self) -> None:
        if self._closing:
            return
        self._set_state("error")
        self._schedule_reconnect()

    async def _read(self, connection: BaseConnection) -> None:
        clean = True
        try:
            while True:
                self._dispatch(await connection.recv())
        except ConnectionClosed as e:
            clean = e.clean
            logger.info(f"StreamClient: connection closed (code: {e.code}, reason: {e.reason})")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            clean = False
            logger.error(f"StreamClient: connection lost: {e}")

        if self._connection is connection:
            self._connection = None
        if self._closing or clean:
            self._set_state("disconnected")
            return
        self._set_state("error")
        self._schedule_reconnect()

    def _dispatch(self, raw: str) -> None:
        try:
            event = StreamEvent.from_json(raw)
        except ValueError as e:
            logger.warning(f"StreamClient: dropping unparseable message: {e}")
            return
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"StreamClient: listener error: {e}")

    # ------------------------------------------------------------------
    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

        if self._attempts >= self._max_attempts:
            logger.error("StreamClient: max reconnection attempts reached")
            self._set_state("error")
            return

        self._attempts += 1
        delay = compute_backoff(self._attempts, self._base_delay)
        logger.info(
            f"StreamClient: scheduling reconnect in {delay:.2f}s (attempt {self._attempts})"
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        self._reconnect_task = None
        if self._closing:
            return
        try:
            await self.connect()
        except StreamConnectionError as e:
            logger.debug(f"StreamClient: reconnection failed: {e}")

    # ------------------------------------------------------------------
    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener``; the first subscriber starts the connection."""
        self._listeners.append(listener)

        if len(self._listeners) == 1 and self._state == "disconnected":
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("StreamClient: no running loop, call connect() explicitly")
            else:
                self._auto_connect_task = asyncio.create_task(self._auto_connect())

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    async def _auto_connect(self) -> None:
        try:
            await self.connect()
        except StreamConnectionError as e:
            logger.error(f"StreamClient: auto-connect failed: {e}")

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; it is called at once with the current state."""
        self._state_listeners.append(listener)
        listener(self._state)

        def unsubscribe() -> None:
            try:
                self._state_listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def reset_attempts(self) -> None:
        self._attempts = 0

    async def disconnect(self) -> None:
        """Close cleanly; no reconnect follows."""
        self._closing = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close(NORMAL_CLOSURE, "Manual disconnect")
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        self._set_state("disconnected")
        self._attempts = 0
