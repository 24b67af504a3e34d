"""Twilio REST client wrapper for placing and ending calls."""
import asyncio
import logging
from typing import List, Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from app.core.config import Settings
from app.core.errors import UpstreamFailureError

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS: List[str] = ["initiated", "ringing", "answered", "completed"]


class TwilioCallProvider:
    """
    Places outbound calls and hangs them up through the Twilio REST API.

    The Twilio helper library is synchronous, so every request runs in a
    worker thread. Failures surface as UpstreamFailureError; nothing is
    retried.
    """

    def __init__(self, account_sid: str, auth_token: str, from_number: Optional[str], client: Optional[Client] = None):
        self.from_number = from_number
        self.client = client or Client(account_sid, auth_token)

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["TwilioCallProvider"]:
        """Build a provider, or return None when credentials are missing."""
        if not settings.twilio_account_sid or not settings.twilio_auth_token:
            return None
        return cls(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
        )

    async def place_call(self, to: str, voice_url: str, status_callback_url: str) -> str:
        """Start an outbound call and return Twilio's call SID."""
        logger.info(f"[TWILIO] Placing call - To: {to}")
        try:
            call = await asyncio.to_thread(
                self.client.calls.create,
                to=to,
                from_=self.from_number,
                url=voice_url,
                status_callback=status_callback_url,
                status_callback_event=STATUS_CALLBACK_EVENTS,
                status_callback_method="POST",
            )
        except TwilioException as e:
            raise UpstreamFailureError(f"Call initiation failed: {str(e)}") from e
        except Exception as e:
            raise UpstreamFailureError(
                f"Call initiation failed: {type(e).__name__}: {str(e)}"
            ) from e

        logger.info(f"[TWILIO] Call placed - To: {to}, CallSid: {call.sid}")
        return call.sid

    async def complete_call(self, call_sid: str) -> None:
        """Hang up a live call."""
        logger.info(f"[TWILIO] Completing call - CallSid: {call_sid}")
        try:
            await asyncio.to_thread(self.client.calls(call_sid).update, status="completed")
        except TwilioException as e:
            raise UpstreamFailureError(f"Call termination failed: {str(e)}") from e
        except Exception as e:
            raise UpstreamFailureError(
                f"Call termination failed: {type(e).__name__}: {str(e)}"
            ) from e
