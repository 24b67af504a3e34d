"""FastAPI dependencies."""
from starlette.requests import HTTPConnection

from app.core.config import Settings
from app.services.call_session.manager import CallSessionManager
from app.services.call_session.store import SessionStore
from app.services.realtime.dispatcher import MessageDispatcher
from app.services.realtime.notifier import Notifier
from app.services.realtime.registry import ConnectionRegistry
from app.services.telephony.provider import TwilioCallProvider
from app.services.text_generation.relay import TextGenerationRelay


def configure_services(state, settings: Settings) -> None:
    """
    Create the per-application registry, store and services.

    Everything is attached to ``app.state`` so handlers share one instance
    without module-level globals.
    """
    registry = ConnectionRegistry()
    notifier = Notifier(registry)
    session_store = SessionStore()
    call_manager = CallSessionManager(
        session_store,
        notifier,
        TwilioCallProvider.from_settings(settings),
        settings,
    )
    text_relay = TextGenerationRelay(notifier, settings)

    state.registry = registry
    state.notifier = notifier
    state.session_store = session_store
    state.call_manager = call_manager
    state.text_relay = text_relay
    state.dispatcher = MessageDispatcher(registry, notifier, call_manager, text_relay)


def get_connection_registry(connection: HTTPConnection) -> ConnectionRegistry:
    """Get the connection registry."""
    return connection.app.state.registry


def get_session_store(connection: HTTPConnection) -> SessionStore:
    """Get the session store."""
    return connection.app.state.session_store


def get_call_manager(connection: HTTPConnection) -> CallSessionManager:
    """Get the call session manager."""
    return connection.app.state.call_manager


def get_dispatcher(connection: HTTPConnection) -> MessageDispatcher:
    """Get the WebSocket message dispatcher."""
    return connection.app.state.dispatcher
