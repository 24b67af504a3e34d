"""Fan-out of session and client events to WebSocket observers."""
import json
import logging
from typing import Any, Dict, Optional

from app.services.call_session.models import timestamp
from app.services.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


def make_event(event_type: str, **fields: Any) -> Dict[str, Any]:
    """Build a `{type, ...fields, timestamp}` payload."""
    return {"type": event_type, **fields, "timestamp": timestamp()}


class Notifier:
    """Serializes events and hands them to the connection registry."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def broadcast(self, event: Dict[str, Any], exclude_connection_id: Optional[str] = None) -> int:
        """
        Deliver an event to every open connection except the excluded one.

        Returns the number of connections the event was queued for.
        """
        text = json.dumps(event)
        delivered = self.registry.broadcast(text, exclude_connection_id)
        logger.debug(f"[NOTIFY] Broadcast {event.get('type')} to {delivered} clients")
        return delivered

    def unicast(self, connection_id: Optional[str], event: Dict[str, Any]) -> None:
        """
        Deliver an event to a single connection.

        Raises ConnectionNotFoundError if the connection is not registered.
        """
        if not self.registry.send(connection_id, json.dumps(event)):
            logger.debug(
                f"[NOTIFY] Skipped {event.get('type')} for closed client {connection_id}"
            )

    def emit(self, event_type: str, exclude_connection_id: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
        """Build and broadcast an event in one call."""
        event = make_event(event_type, **fields)
        self.broadcast(event, exclude_connection_id)
        return event

    def send(self, connection_id: Optional[str], event_type: str, **fields: Any) -> Dict[str, Any]:
        """Build and unicast an event in one call."""
        event = make_event(event_type, **fields)
        self.unicast(connection_id, event)
        return event
