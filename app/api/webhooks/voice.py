"""Twilio voice webhook endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import Response

from app.core.dependencies import get_call_manager
from app.services.call_session.manager import CallSessionManager

router = APIRouter()
logger = logging.getLogger(__name__)


def twiml_response(twiml: str) -> Response:
    return Response(content=twiml, media_type="text/xml")


@router.post("/twiml")
async def handle_twiml(
    request: Request,
    sessionId: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    CallStatus: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """
    Tell Twilio what to do next on a call.

    Twilio requests this URL once the outbound call connects.
    """
    logger.info(
        f"[TWIML] Voice request received - Session: {sessionId}, CallSid: {CallSid}, "
        f"CallStatus: {CallStatus}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        twiml = call_manager.build_voice_response(sessionId, CallSid, CallStatus)
    except Exception as e:
        logger.error(
            f"[TWIML] Error building voice response - Session: {sessionId}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        # Twilio always gets a valid document
        twiml = call_manager.prompts.invalid_call()

    return twiml_response(twiml)


@router.post("/status-callback")
async def handle_status_callback(
    request: Request,
    sessionId: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    CallStatus: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """
    Handle call status updates from Twilio.

    Always answers OK, even for unknown sessions, so Twilio does not retry.
    """
    logger.info(
        f"[STATUS CALLBACK] Received status update - Session: {sessionId}, "
        f"CallSid: {CallSid}, CallStatus: {CallStatus}"
    )

    try:
        call_manager.handle_status_callback(sessionId, CallSid, CallStatus)
    except Exception as e:
        logger.error(
            f"[STATUS CALLBACK] Error handling status update - Session: {sessionId}, "
            f"CallStatus: {CallStatus}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )

    # Still return OK to Twilio to avoid retries
    return Response(content="OK", media_type="text/plain")


@router.post("/gather")
async def handle_gather(
    request: Request,
    sessionId: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    Digits: Optional[str] = Form(None),
    SpeechResult: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """Handle the caller's keypress or speech."""
    logger.info(
        f"[GATHER] Received input - Session: {sessionId}, CallSid: {CallSid}, "
        f"Digits: {Digits!r}, SpeechResult length: {len(SpeechResult) if SpeechResult else 0}"
    )

    try:
        twiml = call_manager.handle_user_input(sessionId, CallSid, Digits, SpeechResult)
    except Exception as e:
        logger.error(
            f"[GATHER] Error processing input - Session: {sessionId}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        twiml = call_manager.prompts.invalid_call()

    return twiml_response(twiml)


@router.post("/no-input")
async def handle_no_input(
    request: Request,
    sessionId: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """Handle a Gather that timed out without input."""
    logger.info(f"[NO INPUT] No caller input - Session: {sessionId}, CallSid: {CallSid}")

    try:
        twiml = call_manager.handle_no_input(sessionId, CallSid)
    except Exception as e:
        logger.error(
            f"[NO INPUT] Error handling missing input - Session: {sessionId}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        twiml = call_manager.prompts.invalid_call()

    return twiml_response(twiml)
