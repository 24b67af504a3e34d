"""Health check endpoints."""
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.core.dependencies import get_connection_registry, get_session_store
from app.services.call_session.store import SessionStore
from app.services.realtime.registry import ConnectionRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness banner."""
    return "Call relay WebSocket server with Twilio integration is running"


@router.get("/health")
async def health_check(
    request: Request,
    registry: ConnectionRegistry = Depends(get_connection_registry),
    session_store: SessionStore = Depends(get_session_store),
):
    """Health check endpoint."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {
        "status": "healthy",
        "connections": len(registry),
        "sessions": len(session_store),
    }
