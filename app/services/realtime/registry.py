"""Live WebSocket connections."""
import asyncio
import logging
from typing import Dict, Iterator, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from app.core.errors import ConnectionNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUEUE = 1000
CLOSE_TRY_AGAIN_LATER = 1013


class ClientConnection:
    """
    A connected WebSocket client with its own outbound queue.

    deliver() never blocks: messages are queued and written by pump(), which
    the WebSocket route runs as a background task. A slow client therefore
    only delays its own messages, and messages to one client keep the order
    in which they were queued. A client that falls max_queue messages behind
    is dropped instead of buffering without limit.
    """

    def __init__(self, connection_id: str, websocket: WebSocket, max_queue: int = DEFAULT_MAX_QUEUE):
        self.connection_id = connection_id
        self.websocket = websocket
        # One slot is kept free for the stop marker
        self._outbox: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=max_queue + 1)
        self._max_queue = max_queue
        self._closed = False
        self._overflowed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and self.websocket.client_state == WebSocketState.CONNECTED

    def deliver(self, text: str) -> None:
        """Queue a serialized message for this client."""
        if self._closed:
            return
        if self._outbox.qsize() >= self._max_queue:
            logger.warning(
                f"[WS] Outbound queue full, dropping client - Client: {self.connection_id}, "
                f"Queued: {self._outbox.qsize()}"
            )
            self._overflowed = True
            self._closed = True
            while not self._outbox.empty():
                self._outbox.get_nowait()
            self._outbox.put_nowait(None)
            return
        self._outbox.put_nowait(text)

    async def pump(self) -> None:
        """Write queued messages to the socket until close() is called."""
        while True:
            text = await self._outbox.get()
            if text is None:
                break
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                logger.warning(
                    f"[WS] Send failed, dropping client - Client: {self.connection_id}, "
                    f"Error: {type(e).__name__}: {str(e)}"
                )
                self._closed = True
                return

        if self._overflowed:
            # Ends the route's receive loop, which then unregisters the client
            try:
                await self.websocket.close(code=CLOSE_TRY_AGAIN_LATER)
            except Exception as e:
                logger.warning(
                    f"[WS] Close failed - Client: {self.connection_id}, "
                    f"Error: {type(e).__name__}: {str(e)}"
                )

    def close(self) -> None:
        """Stop accepting messages and let pump() drain and exit."""
        if not self._closed:
            self._closed = True
            self._outbox.put_nowait(None)


class ConnectionRegistry:
    """Connections keyed by connection id."""

    def __init__(self):
        self._connections: Dict[str, ClientConnection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __iter__(self) -> Iterator[ClientConnection]:
        # Snapshot so a disconnect during iteration cannot break a broadcast
        return iter(list(self._connections.values()))

    def add(self, connection: ClientConnection) -> None:
        self._connections[connection.connection_id] = connection
        logger.debug(f"[REGISTRY] Added client {connection.connection_id} - Total: {len(self)}")

    def remove(self, connection_id: str) -> Optional[ClientConnection]:
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.debug(f"[REGISTRY] Removed client {connection_id} - Total: {len(self)}")
        return connection

    def get(self, connection_id: Optional[str]) -> ClientConnection:
        connection = self._connections.get(connection_id) if connection_id else None
        if connection is None:
            raise ConnectionNotFoundError(connection_id)
        return connection

    def send(self, connection_id: Optional[str], text: str) -> bool:
        """
        Send to a single connection.

        Returns False when the connection is registered but no longer open.
        """
        connection = self.get(connection_id)
        if not connection.is_open:
            return False
        connection.deliver(text)
        return True

    def broadcast(self, text: str, exclude_connection_id: Optional[str] = None) -> int:
        """Send to every open connection except the excluded one."""
        delivered = 0
        for connection in self:
            if connection.connection_id == exclude_connection_id or not connection.is_open:
                continue
            connection.deliver(text)
            delivered += 1
        return delivered
