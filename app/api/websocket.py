"""WebSocket endpoint for live observers."""
import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket

from app.core.dependencies import get_dispatcher
from app.services.call_session.store import generate_id
from app.services.realtime.dispatcher import MessageDispatcher
from app.services.realtime.registry import ClientConnection

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/")
@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    """Register the client and dispatch its messages until it disconnects."""
    await websocket.accept()
    connection = ClientConnection(generate_id(), websocket)
    connection_id = connection.connection_id
    logger.info(
        f"[WS] New connection - Client: {connection_id}, "
        f"From: {websocket.client.host if websocket.client else 'unknown'}"
    )

    pump = asyncio.create_task(connection.pump())
    dispatcher.connect(connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await dispatcher.handle_message(connection_id, raw)
    finally:
        dispatcher.disconnect(connection_id)
        pump.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump
