"""Call session models."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Statuses assigned by the relay itself; everything else comes from Twilio
STATUS_INITIATING = "initiating"
STATUS_INITIATED = "initiated"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED_BY_USER = "completed_by_user"

LEAD_INTERESTED = "interested"
LEAD_OPT_OUT = "opt-out"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp() -> str:
    """ISO-8601 timestamp used on events and broadcasts."""
    return utc_now().isoformat()


class CallSession(BaseModel):
    """One outbound call attempt, tracked end to end."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    to: str
    campaign_id: Optional[str] = None
    agent_id: Optional[str] = None
    script: Optional[str] = None
    provider_call_id: Optional[str] = None
    status: str = STATUS_INITIATING
    lead_status: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=utc_now)

    def summary(self) -> Dict[str, Any]:
        """Bulk-listing view of the session, without the event trail."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include={"to", "status", "start_time", "campaign_id", "lead_status"},
        )

    def to_wire(self) -> Dict[str, Any]:
        """Full record as exposed over REST."""
        return self.model_dump(mode="json", by_alias=True)
