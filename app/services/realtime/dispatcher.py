"""Routing of WebSocket client messages."""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from app.core.errors import InvalidRequestError, ProtocolError, RelayError
from app.services.call_session.manager import CallSessionManager
from app.services.realtime.notifier import Notifier
from app.services.realtime.registry import ClientConnection, ConnectionRegistry
from app.services.text_generation.relay import TextGenerationRelay

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Connected to the call relay WebSocket server"

Handler = Callable[[str, Dict[str, Any]], Awaitable[None]]


class MessageDispatcher:
    """
    Handles connect, disconnect and every client message kind.

    Errors are reported to the sending connection only and never close it.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        notifier: Notifier,
        call_manager: CallSessionManager,
        text_relay: TextGenerationRelay,
    ):
        self.registry = registry
        self.notifier = notifier
        self.call_manager = call_manager
        self.text_relay = text_relay
        self._relay_tasks: Dict[str, Set[asyncio.Task]] = {}
        self._handlers: Dict[str, Handler] = {
            "echo": self._handle_echo,
            "broadcast": self._handle_broadcast,
            "direct": self._handle_direct,
            "openai": self._handle_openai,
            "initiate_call": self._handle_initiate_call,
            "get_active_calls": self._handle_get_active_calls,
            "end_call": self._handle_end_call,
        }

    def connect(self, connection: ClientConnection) -> None:
        """Register a new client, greet it and tell everyone else."""
        connection_id = connection.connection_id
        self.registry.add(connection)
        self.notifier.send(connection_id, "connection_established", id=connection_id, message=WELCOME_MESSAGE)
        self.notifier.emit("client_connected", exclude_connection_id=connection_id, id=connection_id)
        logger.info(f"[WS] Client connected - Client: {connection_id}, Total: {len(self.registry)}")

    def disconnect(self, connection_id: str) -> None:
        """Forget a client, stop its relays and tell everyone else."""
        for task in self._relay_tasks.pop(connection_id, set()):
            task.cancel()

        connection = self.registry.remove(connection_id)
        if connection is None:
            return
        connection.close()
        self.notifier.emit("client_disconnected", id=connection_id)
        logger.info(f"[WS] Client disconnected - Client: {connection_id}, Total: {len(self.registry)}")

    async def handle_message(self, connection_id: str, raw: str) -> None:
        """Parse and dispatch one client message."""
        logger.debug(f"[WS] Message received - Client: {connection_id}, Length: {len(raw)}")
        try:
            message = self._parse(raw)
            message_type = message.get("type")
            handler = self._handlers.get(message_type) if isinstance(message_type, str) else None
            if handler is None:
                raise ProtocolError(f"Unrecognized message type: {message_type}")
            await handler(connection_id, message)
        except RelayError as e:
            logger.info(
                f"[WS] Request rejected - Client: {connection_id}, Code: {e.code}, Message: {e.message}"
            )
            self._reply_error(connection_id, e)
        except Exception as e:
            logger.error(
                f"[WS] Error handling message - Client: {connection_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            self._reply_error(connection_id, RelayError(f"Error handling message: {str(e)}"))

    def _parse(self, raw: str) -> Dict[str, Any]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ProtocolError("Invalid message format - JSON expected") from e
        if not isinstance(message, dict):
            raise ProtocolError("Invalid message format - JSON object expected")
        return message

    def _reply_error(self, connection_id: str, error: RelayError) -> None:
        if connection_id in self.registry:
            self.notifier.send(connection_id, "error", code=error.code, message=error.message)

    async def _handle_echo(self, connection_id: str, message: Dict[str, Any]) -> None:
        self.notifier.send(connection_id, "echo_response", data=message.get("data"))

    async def _handle_broadcast(self, connection_id: str, message: Dict[str, Any]) -> None:
        self.notifier.emit("broadcast_message", **{"from": connection_id, "data": message.get("data")})

    async def _handle_direct(self, connection_id: str, message: Dict[str, Any]) -> None:
        self.notifier.send(
            message.get("targetId"),
            "direct_message",
            **{"from": connection_id, "data": message.get("data")},
        )

    async def _handle_openai(self, connection_id: str, message: Dict[str, Any]) -> None:
        prompt = message.get("prompt")
        if not prompt:
            raise InvalidRequestError("A prompt is required for OpenAI requests")

        # Runs in the background so the client can keep sending messages
        task = asyncio.create_task(self.text_relay.relay(prompt, connection_id))
        tasks = self._relay_tasks.setdefault(connection_id, set())
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    async def _handle_initiate_call(self, connection_id: str, message: Dict[str, Any]) -> None:
        # Success is reported through the call_initiating/call_initiated broadcasts
        await self.call_manager.initiate_call(
            to=message.get("to"),
            campaign_id=message.get("campaignId"),
            agent_id=message.get("agentId"),
            script=message.get("script"),
            requested_by=connection_id,
        )

    async def _handle_get_active_calls(self, connection_id: str, message: Dict[str, Any]) -> None:
        self.notifier.send(connection_id, "active_calls_list", calls=self.call_manager.list_sessions())

    async def _handle_end_call(self, connection_id: str, message: Dict[str, Any]) -> None:
        session_id: Optional[str] = message.get("sessionId")
        await self.call_manager.end_call(session_id, requested_by=connection_id)
        self._reply(connection_id, "call_end_success", sessionId=session_id)

    def _reply(self, connection_id: str, event_type: str, **fields: Any) -> None:
        if connection_id in self.registry:
            self.notifier.send(connection_id, event_type, **fields)
