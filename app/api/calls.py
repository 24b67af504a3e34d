"""Call management API endpoints."""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.dependencies import get_call_manager
from app.core.errors import RelayError
from app.services.call_session.manager import CallSessionManager

router = APIRouter()
logger = logging.getLogger(__name__)


class InitiateCallRequest(BaseModel):
    """Initiate call request body."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Left untyped so the call manager reports bad values as 400s
    to: Any = None
    campaign_id: Any = None
    agent_id: Any = None
    script: Any = None


class InitiateCallResponse(BaseModel):
    """Initiate call response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    session_id: str
    provider_call_id: str


@router.post("/api/calls/initiate", response_model=InitiateCallResponse, response_model_by_alias=True)
async def initiate_call(
    request: Request,
    body: InitiateCallRequest,
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """Place an outbound call."""
    logger.info(
        f"[INITIATE] REST request received - To: {body.to}, Campaign: {body.campaign_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        session_id, provider_call_id = await call_manager.initiate_call(
            to=body.to,
            campaign_id=body.campaign_id,
            agent_id=body.agent_id,
            script=body.script,
        )
    except RelayError as e:
        logger.warning(f"[INITIATE] Request failed - To: {body.to}, Code: {e.code}, Message: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return InitiateCallResponse(session_id=session_id, provider_call_id=provider_call_id)


@router.get("/api/sessions/{session_id}")
async def get_session(
    session_id: str,
    call_manager: CallSessionManager = Depends(get_call_manager),
) -> Dict[str, Any]:
    """Get the full record of one call session."""
    try:
        session = call_manager.get_session(session_id)
    except RelayError as e:
        raise HTTPException(status_code=e.status_code, detail="Session not found")
    return session.to_wire()


@router.get("/api/sessions")
async def list_sessions(
    call_manager: CallSessionManager = Depends(get_call_manager),
) -> Dict[str, Dict[str, Any]]:
    """Get a summary of every call session."""
    sessions = call_manager.list_sessions()
    logger.debug(f"[SESSIONS] Listing {len(sessions)} sessions")
    return sessions
