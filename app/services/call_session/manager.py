"""Call session manager."""
import logging
from typing import Dict, Any, Optional, Tuple
from urllib.parse import urlencode

from app.core.config import Settings
from app.core.errors import (
    ConfigurationMissingError,
    InvalidRequestError,
    InvalidStateError,
)
from app.services.call_session.intents import CallerIntent, classify_input
from app.services.call_session.models import (
    CallSession,
    LEAD_INTERESTED,
    LEAD_OPT_OUT,
    STATUS_COMPLETED_BY_USER,
    STATUS_INITIATED,
    STATUS_INITIATING,
    STATUS_IN_PROGRESS,
)
from app.services.call_session.store import SessionStore
from app.services.realtime.notifier import Notifier
from app.services.telephony.provider import TwilioCallProvider
from app.services.telephony.voice_response import (
    INTERESTED_MESSAGE,
    NO_INPUT_MESSAGE,
    OPT_OUT_MESSAGE,
    UNRECOGNIZED_MESSAGE,
    VoicePromptBuilder,
)

logger = logging.getLogger(__name__)

TWIML_PATH = "/api/twilio/twiml"
STATUS_CALLBACK_PATH = "/api/twilio/status-callback"
GATHER_PATH = "/api/twilio/gather"
NO_INPUT_PATH = "/api/twilio/no-input"

DEFAULT_CAMPAIGN_ID = "default"
END_REASON_USER = "user_terminated"


class CallSessionManager:
    """
    Drives outbound calls through their lifecycle.

    Webhook callbacks and client requests both land here. Each handler reads
    and writes the session store without awaiting in between; the only
    suspension points are the Twilio requests, after which the session is
    fetched again.
    """

    def __init__(
        self,
        store: SessionStore,
        notifier: Notifier,
        provider: Optional[TwilioCallProvider],
        settings: Settings,
    ):
        self.store = store
        self.notifier = notifier
        self.provider = provider
        self.settings = settings
        self.prompts = VoicePromptBuilder(settings)

    def webhook_url(self, path: str, session_id: str) -> str:
        """Absolute webhook URL carrying the session id."""
        return f"{self.settings.base_url}{path}?{urlencode({'sessionId': session_id})}"

    async def initiate_call(
        self,
        to: Optional[str],
        campaign_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        script: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Create a session and ask Twilio to place the call.

        Args:
            to: Destination phone number
            campaign_id: Campaign tag, defaults to "default"
            agent_id: Agent tag, defaults to the requesting connection id
            script: Text spoken when the call is answered
            requested_by: WebSocket connection id of the requester, if any

        Returns:
            Tuple of (session id, Twilio call SID)
        """
        if not isinstance(to, str) or not to.strip():
            raise InvalidRequestError("Phone number is required")
        to = to.strip()
        for name, value in (("campaignId", campaign_id), ("agentId", agent_id), ("script", script)):
            if value is not None and not isinstance(value, str):
                raise InvalidRequestError(f"{name} must be a string")
        if self.provider is None:
            raise ConfigurationMissingError("Twilio is not configured on the server")

        session_id = self.store.create(
            to=to,
            campaign_id=campaign_id or DEFAULT_CAMPAIGN_ID,
            agent_id=agent_id or requested_by,
            script=script or self.settings.default_script,
            status=STATUS_INITIATING,
        )
        session = self.store.get(session_id)
        logger.info(
            f"[INITIATE] Session created - Session: {session_id}, To: {to}, "
            f"Campaign: {session.campaign_id}, Requested by: {requested_by or 'rest'}"
        )

        self.notifier.emit(
            "call_initiating",
            sessionId=session_id,
            to=session.to,
            campaignId=session.campaign_id,
            agentId=session.agent_id,
        )

        try:
            provider_call_id = await self.provider.place_call(
                to=to,
                voice_url=self.webhook_url(TWIML_PATH, session_id),
                status_callback_url=self.webhook_url(STATUS_CALLBACK_PATH, session_id),
            )
        except Exception as e:
            logger.error(
                f"[INITIATE] Call placement failed - Session: {session_id}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
            raise

        # Status callbacks may have run while the placement request was pending
        session = self.store.get(session_id)
        fields: Dict[str, Any] = {"provider_call_id": provider_call_id}
        if session.status == STATUS_INITIATING:
            fields["status"] = STATUS_INITIATED
        self.store.update(
            session_id,
            "call_initiated",
            {"providerCallId": provider_call_id},
            **fields,
        )

        self.notifier.emit(
            "call_initiated",
            sessionId=session_id,
            providerCallId=provider_call_id,
        )
        logger.info(
            f"[INITIATE] Call initiated - Session: {session_id}, CallSid: {provider_call_id}"
        )
        return session_id, provider_call_id

    def handle_status_callback(
        self, session_id: Optional[str], call_sid: Optional[str], call_status: Optional[str]
    ) -> bool:
        """
        Record a status change reported by Twilio.

        Returns False when the session is unknown; nothing is created or
        changed in that case.
        """
        session = self.store.find(session_id)
        if session is None:
            logger.warning(
                f"[STATUS CALLBACK] Unknown session - Session: {session_id}, "
                f"CallSid: {call_sid}, CallStatus: {call_status}"
            )
            return False

        fields = {"status": call_status} if call_status else {}
        self.store.update(session_id, "status_callback", {"status": call_status}, **fields)
        self.notifier.emit(
            "call_status_update",
            sessionId=session_id,
            callSid=call_sid,
            status=call_status,
        )
        return True

    def build_voice_response(
        self, session_id: Optional[str], call_sid: Optional[str], call_status: Optional[str]
    ) -> str:
        """
        Decide what Twilio should do next on a live call.

        Returns:
            TwiML XML response
        """
        session = self.store.find(session_id)
        if session is not None:
            fields = {"status": call_status} if call_status else {}
            self.store.update(session_id, "call_status_update", {"status": call_status}, **fields)

        self.notifier.emit(
            "call_status_update",
            sessionId=session_id,
            callSid=call_sid,
            status=call_status,
        )

        if session is None:
            logger.warning(f"[TWIML] Unknown session - Session: {session_id}, CallSid: {call_sid}")
            return self.prompts.invalid_call()

        if call_status == STATUS_IN_PROGRESS:
            return self.prompts.script_with_gather(
                session.script or self.settings.default_script,
                gather_url=self.webhook_url(GATHER_PATH, session_id),
                no_input_url=self.webhook_url(NO_INPUT_PATH, session_id),
            )

        logger.info(
            f"[TWIML] Call not in progress, hanging up - Session: {session_id}, "
            f"CallStatus: {call_status}"
        )
        return self.prompts.hangup()

    def handle_user_input(
        self,
        session_id: Optional[str],
        call_sid: Optional[str],
        digits: Optional[str],
        speech_result: Optional[str],
    ) -> str:
        """
        Classify gathered input, record the lead disposition and hang up.

        Returns:
            TwiML XML response
        """
        session = self.store.find(session_id)
        if session is None:
            logger.warning(f"[GATHER] Unknown session - Session: {session_id}, CallSid: {call_sid}")
            return self.prompts.invalid_call()

        digits = digits or ""
        speech_result = speech_result or ""
        self.store.append_event(session_id, "user_input", digits=digits, speechResult=speech_result)
        self.notifier.emit(
            "call_user_input",
            sessionId=session_id,
            callSid=call_sid,
            digits=digits,
            speechResult=speech_result,
        )

        intent = classify_input(
            digits,
            speech_result,
            self.settings.affirmative_keyword,
            self.settings.negative_keyword,
        )
        logger.info(f"[GATHER] Input classified - Session: {session_id}, Intent: {intent.value}")

        if intent == CallerIntent.MORE_INFO:
            self.store.update(session_id, "lead_qualified", lead_status=LEAD_INTERESTED)
            self.notifier.emit("lead_qualified", sessionId=session_id, callSid=call_sid)
            closing = INTERESTED_MESSAGE
        elif intent == CallerIntent.OPT_OUT:
            self.store.update(session_id, "opt_out", lead_status=LEAD_OPT_OUT)
            self.notifier.emit("opt_out", sessionId=session_id, callSid=call_sid)
            closing = OPT_OUT_MESSAGE
        else:
            self.store.append_event(session_id, "unrecognized_response")
            closing = UNRECOGNIZED_MESSAGE

        return self.prompts.say_and_hangup(closing)

    def handle_no_input(self, session_id: Optional[str], call_sid: Optional[str]) -> str:
        """Record that the caller never answered the prompt and hang up."""
        if self.store.find(session_id) is not None:
            self.store.append_event(session_id, "no_input")
            self.notifier.emit("no_input", sessionId=session_id, callSid=call_sid)
        else:
            logger.warning(f"[NO INPUT] Unknown session - Session: {session_id}, CallSid: {call_sid}")

        return self.prompts.say_and_hangup(NO_INPUT_MESSAGE)

    async def end_call(self, session_id: Optional[str], requested_by: Optional[str] = None) -> CallSession:
        """
        Hang up a call on behalf of a client.

        The session is only changed once Twilio confirms the hangup. The
        call_ended broadcast skips the requester, who gets its own reply.
        """
        session = self.store.get(session_id)
        if not session.provider_call_id:
            raise InvalidStateError(
                f"Cannot end call: session {session_id} has no Twilio call SID"
            )
        if self.provider is None:
            raise ConfigurationMissingError("Twilio is not configured on the server")

        await self.provider.complete_call(session.provider_call_id)

        self.store.update(session_id, "call_ended_by_user", status=STATUS_COMPLETED_BY_USER)
        self.notifier.emit(
            "call_ended",
            exclude_connection_id=requested_by,
            sessionId=session_id,
            reason=END_REASON_USER,
        )
        logger.info(f"[END CALL] Call ended by user - Session: {session_id}, Requested by: {requested_by}")
        return self.store.get(session_id)

    def get_session(self, session_id: Optional[str]) -> CallSession:
        return self.store.get(session_id)

    def list_sessions(self) -> Dict[str, Dict[str, Any]]:
        return self.store.list_summaries()
