"""WebSocket endpoint of the realtime channel."""

import structlog
from fastapi import APIRouter, WebSocket

logger = structlog.get_logger()
router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket) -> None:
    """
    Register the connection as a subscriber and dispatch its messages.

    The loop ends when the client disconnects; only this subscriber is
    released.
    """
    channel = websocket.app.state.service.channel
    await websocket.accept()
    handle = await channel.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await channel.handle_message(handle, text)
    finally:
        await channel.disconnect(handle)
