"""Error taxonomy shared by the REST, webhook and WebSocket surfaces."""
from typing import Optional


class RelayError(Exception):
    """Base class for errors reported back to the immediate caller."""

    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ConfigurationMissingError(RelayError):
    """Provider or text-generation credentials are not configured."""

    code = "CONFIGURATION_MISSING"
    status_code = 500


class InvalidRequestError(RelayError):
    """A required request field is missing or empty."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(RelayError):
    code = "NOT_FOUND"
    status_code = 404


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: Optional[str]):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ConnectionNotFoundError(NotFoundError):
    def __init__(self, connection_id: Optional[str]):
        super().__init__(f"Target client not found: {connection_id}")
        self.connection_id = connection_id


class InvalidStateError(RelayError):
    """The session cannot take the requested transition."""

    code = "INVALID_STATE"
    status_code = 409


class SessionConflictError(RelayError):
    """A generated session id is already in use."""

    code = "CONFLICT"
    status_code = 409


class UpstreamFailureError(RelayError):
    """Twilio or OpenAI rejected or failed a request."""

    code = "UPSTREAM_FAILURE"
    status_code = 502


class ProtocolError(RelayError):
    """A client message could not be parsed or has an unknown type."""

    code = "PROTOCOL_ERROR"
    status_code = 400
