"""WebSocket /ws: live job and channel progress.

On connect the client receives {"type": "initial_state", "jobs": [...]}, then
every event the orchestrator publishes. Events are published from worker
threads; they are handed to the event loop with call_soon_threadsafe and
buffered in a bounded queue. A slow client loses events rather than stalling
job execution.
"""

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, WebSocket
from fastapi.websockets import WebSocketDisconnect

from reddit_intel.backend.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)

OUTBOX_SIZE = 1000


async def _send_events(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        event = await outbox.get()
        await websocket.send_json(event)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def job_events(websocket: WebSocket) -> None:
    orchestrator = websocket.app.state.orchestrator
    loop = asyncio.get_running_loop()
    outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=OUTBOX_SIZE)

    def enqueue(event: Dict[str, Any]) -> None:
        try:
            outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("websocket_event_dropped", event_type=event.get("type"))

    def on_event(event: Dict[str, Any]) -> None:
        loop.call_soon_threadsafe(enqueue, event)

    await websocket.accept()
    logger.info("websocket_connected")

    unsubscribe = orchestrator.subscribe(on_event)
    try:
        await websocket.send_json({"type": "initial_state", "jobs": orchestrator.list_jobs()})

        sender = asyncio.create_task(_send_events(websocket, outbox))
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error("websocket_error", error=str(error), error_type=type(error).__name__)
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        logger.info("websocket_disconnected")
