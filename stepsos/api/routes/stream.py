"""Event feed: every bus event is forwarded to each connected websocket."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from stepsos.contracts import StreamEvent
from stepsos.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


async def _send_events(websocket: WebSocket, queue: "asyncio.Queue[StreamEvent]") -> None:
    await websocket.send_text(
        StreamEvent(event="connected", data={"message": "Connected to StepsOS"}).to_json()
    )
    while True:
        event = await queue.get()
        await websocket.send_text(event.to_json())


async def _watch_disconnect(websocket: WebSocket) -> None:
    # inbound frames are ignored; this only notices the close
    while True:
        await websocket.receive_text()


@router.websocket("/ws")
async def event_feed(websocket: WebSocket):
    services: Services = websocket.app.state.services
    await websocket.accept()
    logger.info("Client connected to event feed")

    # unbounded: a slow client buffers here instead of stalling the runner
    queue: "asyncio.Queue[StreamEvent]" = asyncio.Queue()
    unsubscribe = services.bus.subscribe(queue.put_nowait)
    sender = asyncio.create_task(_send_events(websocket, queue))
    watcher = asyncio.create_task(_watch_disconnect(websocket))
    try:
        done, _ = await asyncio.wait({sender, watcher}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning(f"Event feed connection failed: {exc}")
    finally:
        unsubscribe()
        for task in (sender, watcher):
            task.cancel()
        await asyncio.gather(sender, watcher, return_exceptions=True)
        logger.info("Client disconnected from event feed")
