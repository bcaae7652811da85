"""
FontSync Server - Change Notification WebSocket

Pushes change events to connected clients. Frames are JSON objects:
- {"type": "Hello", "client_id": ..., "version": V, "heartbeat_interval": S} once after the handshake
- {"type": "Added" | "Modified" | "Removed", "path": ..., "version": V} per change
- {"type": "Heartbeat", "version": V} when no event was sent for a heartbeat interval

Clients do not need to send anything; incoming messages are read and ignored
so that disconnects are noticed.
"""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fontsync.server import state
from fontsync.server.notifications import Subscriber


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


async def _DrainIncoming(websocket: WebSocket, client_id: str) -> None:
    """Read until the client disconnects"""
    try:
        while True:
            message = await websocket.receive_text()
            logger.debug(f"Ignoring message from {client_id}: {message[:100]}")
    except WebSocketDisconnect:
        logger.debug(f"Client {client_id} closed the connection")


async def _PumpEvents(websocket: WebSocket, subscriber: Subscriber) -> None:
    """Send queued events, or a heartbeat when the queue stays empty"""
    while True:
        try:
            event = await asyncio.wait_for(
                subscriber.queue.get(), timeout=state.heartbeat_interval_seconds
            )
        except asyncio.TimeoutError:
            await websocket.send_json({
                "type": "Heartbeat",
                "version": state.manifest_store.manifest.version
            })
            continue

        if event is None:
            # Hub closed: server shutting down
            await websocket.close(code=1001, reason="Server shutting down")
            return

        await websocket.send_json(event.model_dump(mode="json"))
        subscriber.delivered += 1


@router.websocket("/events")
async def change_events(websocket: WebSocket):
    """Stream change events to one client until either side disconnects"""
    await websocket.accept()
    subscriber = state.notification_hub.Subscribe()

    try:
        await websocket.send_json({
            "type": "Hello",
            "client_id": subscriber.client_id,
            "version": state.manifest_store.manifest.version,
            "heartbeat_interval": state.heartbeat_interval_seconds
        })

        receiver = asyncio.create_task(_DrainIncoming(websocket, subscriber.client_id))
        sender = asyncio.create_task(_PumpEvents(websocket, subscriber))
        done, pending = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning(f"Notification connection {subscriber.client_id} ended with error: {error}")

    except WebSocketDisconnect:
        logger.debug(f"Client {subscriber.client_id} disconnected before the handshake completed")
    finally:
        state.notification_hub.Unsubscribe(subscriber)
