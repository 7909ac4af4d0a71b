"""WebSocket endpoint for live-reload notifications."""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from hotserve.api.errors import error_response
from hotserve.events import ClientConnection, ReloadChannel

logger = logging.getLogger(__name__)

router = APIRouter()

# Close code sent when the server drops a client, e.g. at shutdown.
GOING_AWAY = 1001


@router.websocket("")
async def livereload_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint that pushes reload notifications.

    After the handshake the server sends ``{"type": "hello", "id": ...}``
    once the connection is registered, then ``{"type": "reload", "id": ...}``
    for every broadcast. Anything the client sends is discarded.
    """
    channel: ReloadChannel = websocket.app.state.channel

    await websocket.accept()

    connection = ClientConnection()
    handle = await channel.register(connection)
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    logger.info(f"Live-reload client connected: {handle} from {client}")

    try:
        await websocket.send_json({"type": "hello", "id": handle})

        receive_task = asyncio.create_task(_discard_incoming(websocket))
        send_task = asyncio.create_task(_forward_events(websocket, connection))

        # Whichever finishes first (client gone, or server closed us) ends the connection
        done, pending = await asyncio.wait(
            [receive_task, send_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Connection {handle} ended with error: {task.exception()}")

    except WebSocketDisconnect:
        pass

    finally:
        connection.close()
        await channel.unregister(handle)
        logger.info(f"Live-reload client disconnected: {handle}")


async def _discard_incoming(websocket: WebSocket) -> None:
    """Read and drop client frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _forward_events(websocket: WebSocket, connection: ClientConnection) -> None:
    """Send each pushed reload event to the client."""
    while True:
        event = await connection.next_event()
        if event is None:
            await websocket.close(code=GOING_AWAY)
            return
        await websocket.send_json(event.to_json())


@router.api_route("", methods=["GET", "HEAD"])
async def upgrade_required() -> HTMLResponse:
    """Plain HTTP requests to the live-reload path must upgrade."""
    return error_response(426, headers={"Upgrade": "websocket", "Connection": "Upgrade"})
