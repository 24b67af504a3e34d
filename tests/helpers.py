"""Test doubles shared across the unit tests."""
import json
from typing import Any, Dict, List
from unittest.mock import Mock


class FakeConnection:
    """Stands in for ClientConnection and records delivered messages."""

    def __init__(self, connection_id: str, is_open: bool = True):
        self.connection_id = connection_id
        self.is_open = is_open
        self.messages: List[Dict[str, Any]] = []
        self.closed = False

    def deliver(self, text: str) -> None:
        self.messages.append(json.loads(text))

    def close(self) -> None:
        self.closed = True
        self.is_open = False

    def types(self) -> List[str]:
        return [message["type"] for message in self.messages]


def make_chunk(content):
    """Build an OpenAI streaming chunk carrying one content delta."""
    return Mock(choices=[Mock(delta=Mock(content=content))])


def make_stream(*fragments, error: Exception = None):
    """Async iterator standing in for an OpenAI completion stream."""
    async def _stream():
        for fragment in fragments:
            yield make_chunk(fragment)
        if error is not None:
            raise error
    return _stream()
