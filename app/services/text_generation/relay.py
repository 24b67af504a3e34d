"""Streams chat completions from OpenAI to a single WebSocket client."""
import asyncio
import logging
from typing import AsyncIterator, Optional

from openai import AsyncOpenAI

from app.core.config import Settings
from app.core.errors import (
    ConfigurationMissingError,
    ConnectionNotFoundError,
    RelayError,
    UpstreamFailureError,
)
from app.services.realtime.notifier import Notifier

logger = logging.getLogger(__name__)


class TextGenerationRelay:
    """Forwards completion fragments to the requesting connection as they arrive."""

    def __init__(self, notifier: Notifier, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.notifier = notifier
        self.model = settings.openai_model
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.client = client

    async def stream_fragments(self, prompt: str) -> AsyncIterator[str]:
        """
        Yield non-empty content fragments in the order OpenAI sends them.

        Args:
            prompt: User prompt sent as a single chat message

        Yields:
            Content deltas, unmodified
        """
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

    async def relay(self, prompt: str, connection_id: str) -> None:
        """
        Run one completion for a client.

        Sends request_started, one stream event per fragment, then
        request_completed. Any failure sends a single error event instead of
        the rest; fragments already sent stay sent. Cancelling the task stops
        forwarding.
        """
        if self.client is None:
            self._send_error(
                connection_id,
                ConfigurationMissingError("OpenAI API key is not configured on the server"),
            )
            return

        fragments = 0
        try:
            self.notifier.send(connection_id, "request_started")
            async for fragment in self.stream_fragments(prompt):
                self.notifier.send(connection_id, "stream", content=fragment)
                fragments += 1
            self.notifier.send(connection_id, "request_completed")
            logger.info(f"[OPENAI] Relay completed - Client: {connection_id}, Fragments: {fragments}")
        except asyncio.CancelledError:
            logger.info(f"[OPENAI] Relay cancelled - Client: {connection_id}, Fragments: {fragments}")
            raise
        except ConnectionNotFoundError:
            logger.info(f"[OPENAI] Client disconnected during relay - Client: {connection_id}")
        except RelayError as e:
            self._send_error(connection_id, e)
        except Exception as e:
            logger.error(
                f"[OPENAI] Relay failed - Client: {connection_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            self._send_error(
                connection_id,
                UpstreamFailureError(f"OpenAI API call failed: {str(e)}"),
            )

    def _send_error(self, connection_id: str, error: RelayError) -> None:
        try:
            self.notifier.send(connection_id, "error", code=error.code, message=error.message)
        except ConnectionNotFoundError:
            logger.debug(f"[OPENAI] Dropped error for disconnected client {connection_id}")
