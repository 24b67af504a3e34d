"""In-memory call session store."""
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from app.core.errors import SessionConflictError, SessionNotFoundError
from app.services.call_session.models import CallSession, timestamp

logger = logging.getLogger(__name__)

# Fields that may never be changed through set_fields
_IMMUTABLE_FIELDS = {"session_id", "events", "start_time"}


def generate_id() -> str:
    """Random 128-bit identifier."""
    return uuid.uuid4().hex


class SessionStore:
    """
    Owns every CallSession for the lifetime of the process.

    All operations are synchronous: a handler that reads and then writes a
    session without awaiting in between sees a consistent record. Sessions
    are never deleted.
    """

    def __init__(self, id_factory: Callable[[], str] = generate_id):
        self._sessions: Dict[str, CallSession] = {}
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self, **fields: Any) -> str:
        """Create a session from caller-supplied fields and return its id."""
        session_id = self._id_factory()
        if session_id in self._sessions:
            raise SessionConflictError(f"Session id already in use: {session_id}")

        self._sessions[session_id] = CallSession(session_id=session_id, **fields)
        logger.debug(f"[SESSION STORE] Created session {session_id} - To: {fields.get('to')}")
        return session_id

    def get(self, session_id: Optional[str]) -> CallSession:
        """Get a session, raising SessionNotFoundError if it does not exist."""
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find(self, session_id: Optional[str]) -> Optional[CallSession]:
        """Get a session or None."""
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def append_event(self, session_id: str, event_type: str, **fields: Any) -> Dict[str, Any]:
        """Append a timestamped event record to the session's history."""
        session = self.get(session_id)
        event = {"type": event_type, **fields, "timestamp": timestamp()}
        session.events.append(event)
        return event

    def set_fields(self, session_id: str, **fields: Any) -> CallSession:
        """Overwrite mutable fields on a session."""
        session = self.get(session_id)
        for name in fields:
            if name in _IMMUTABLE_FIELDS or name not in CallSession.model_fields:
                raise ValueError(f"Cannot set field '{name}' on a call session")
        for name, value in fields.items():
            setattr(session, name, value)
        return session

    def update(
        self, session_id: str, event_type: str, event_fields: Optional[Dict[str, Any]] = None, **fields: Any
    ) -> Dict[str, Any]:
        """Set fields and append the matching event as one step."""
        self.set_fields(session_id, **fields)
        return self.append_event(session_id, event_type, **(event_fields or {}))

    def list_summaries(self) -> Dict[str, Dict[str, Any]]:
        """Map of session id to summary, never including the event trail."""
        return {
            session_id: session.summary()
            for session_id, session in self._sessions.items()
        }
