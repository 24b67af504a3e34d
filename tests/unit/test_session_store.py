"""Unit tests for the in-memory session store."""
import pytest

from app.core.errors import SessionConflictError, SessionNotFoundError
from app.services.call_session.store import SessionStore


class TestSessionStore:
    """Test session store operations."""

    def test_create_and_get(self, session_store):
        """Test creating a session and reading it back."""
        session_id = session_store.create(to="+15551234567", campaign_id="spring")

        session = session_store.get(session_id)
        assert session.session_id == session_id
        assert session.to == "+15551234567"
        assert session.campaign_id == "spring"
        assert session.status == "initiating"
        assert session.provider_call_id is None
        assert session.events == []
        assert session.start_time is not None

    def test_ids_are_unique(self, session_store):
        """Test that generated ids do not repeat."""
        ids = {session_store.create(to="+1555000%04d" % i) for i in range(200)}
        assert len(ids) == 200
        assert len(session_store) == 200

    def test_create_with_colliding_id_raises_conflict(self):
        """Test that an id collision is reported instead of overwriting."""
        store = SessionStore(id_factory=lambda: "fixed")
        store.create(to="+15551111111")

        with pytest.raises(SessionConflictError):
            store.create(to="+15552222222")

        assert store.get("fixed").to == "+15551111111"

    def test_get_unknown_raises_not_found(self, session_store):
        """Test that reading a missing session signals NotFound."""
        with pytest.raises(SessionNotFoundError):
            session_store.get("missing")
        with pytest.raises(SessionNotFoundError):
            session_store.get(None)

    def test_find_unknown_returns_none(self, session_store):
        """Test the non-raising lookup."""
        assert session_store.find("missing") is None
        assert session_store.find(None) is None

    def test_append_event_is_ordered_and_timestamped(self, session_store):
        """Test that events are appended in order with timestamps."""
        session_id = session_store.create(to="+15551234567")

        session_store.append_event(session_id, "status_callback", status="ringing")
        session_store.append_event(session_id, "status_callback", status="in-progress")

        events = session_store.get(session_id).events
        assert [event["status"] for event in events] == ["ringing", "in-progress"]
        assert all(event["type"] == "status_callback" for event in events)
        assert all("timestamp" in event for event in events)

    def test_append_event_unknown_session(self, session_store):
        """Test that appending to a missing session does not create it."""
        with pytest.raises(SessionNotFoundError):
            session_store.append_event("missing", "no_input")
        assert "missing" not in session_store

    def test_set_fields(self, session_store):
        """Test overwriting mutable fields."""
        session_id = session_store.create(to="+15551234567")

        session_store.set_fields(session_id, status="ringing", provider_call_id="CA1")

        session = session_store.get(session_id)
        assert session.status == "ringing"
        assert session.provider_call_id == "CA1"

    def test_set_fields_rejects_events_and_id(self, session_store):
        """Test that the event trail and id cannot be replaced."""
        session_id = session_store.create(to="+15551234567")
        session_store.append_event(session_id, "no_input")

        with pytest.raises(ValueError):
            session_store.set_fields(session_id, events=[])
        with pytest.raises(ValueError):
            session_store.set_fields(session_id, session_id="other")
        with pytest.raises(ValueError):
            session_store.set_fields(session_id, status="ringing", unknown_field=1)

        session = session_store.get(session_id)
        assert len(session.events) == 1
        assert session.status == "initiating"

    def test_update_sets_fields_and_appends(self, session_store):
        """Test the combined field update and event append."""
        session_id = session_store.create(to="+15551234567")

        event = session_store.update(session_id, "opt_out", lead_status="opt-out")

        session = session_store.get(session_id)
        assert session.lead_status == "opt-out"
        assert session.events == [event]
        assert event["type"] == "opt_out"

    def test_list_summaries_excludes_events(self, session_store):
        """Test that bulk listing never exposes the event trail."""
        session_id = session_store.create(to="+15551234567", campaign_id="spring")
        session_store.append_event(session_id, "no_input")

        summaries = session_store.list_summaries()

        assert set(summaries) == {session_id}
        assert set(summaries[session_id]) == {"to", "status", "startTime", "campaignId", "leadStatus"}
        assert summaries[session_id]["campaignId"] == "spring"
        assert summaries[session_id]["leadStatus"] is None

    def test_wire_format_uses_camel_case(self, session_store):
        """Test the full record exposed over REST."""
        session_id = session_store.create(to="+15551234567", agent_id="agent-7")

        record = session_store.get(session_id).to_wire()

        assert record["sessionId"] == session_id
        assert record["agentId"] == "agent-7"
        assert record["providerCallId"] is None
        assert isinstance(record["startTime"], str)
        assert record["events"] == []

    def test_summary_and_wire_share_timestamp_format(self, session_store):
        """Test that listing and full record render startTime identically."""
        session_id = session_store.create(to="+15551234567")

        summary = session_store.list_summaries()[session_id]
        record = session_store.get(session_id).to_wire()

        assert summary["startTime"] == record["startTime"]
