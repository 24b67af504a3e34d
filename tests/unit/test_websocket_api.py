"""Unit tests for the WebSocket endpoint."""
from app.main import app


class TestWebSocketAPI:
    """Test the live observer socket end to end."""

    def test_connection_established(self, test_client):
        with test_client.websocket_connect("/ws") as websocket:
            message = websocket.receive_json()

            assert message["type"] == "connection_established"
            assert message["id"] in app.state.registry

    def test_root_path_accepts_websockets(self, test_client):
        with test_client.websocket_connect("/") as websocket:
            assert websocket.receive_json()["type"] == "connection_established"

    def test_echo_and_bad_payloads_keep_connection_open(self, test_client):
        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            error = websocket.receive_json()
            assert error["type"] == "error"
            assert error["code"] == "PROTOCOL_ERROR"

            websocket.send_json({"type": "unknown"})
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "echo", "data": "still here"})
            echo = websocket.receive_json()
            assert echo["type"] == "echo_response"
            assert echo["data"] == "still here"

    def test_initiate_call_fans_out_to_connected_observers(self, test_client):
        """Test that observers present at initiation see both broadcasts in order."""
        with test_client.websocket_connect("/ws") as first:
            first.receive_json()
            with test_client.websocket_connect("/ws") as second:
                second_id = second.receive_json()["id"]
                joined = first.receive_json()
                assert joined["type"] == "client_connected"
                assert joined["id"] == second_id

                first.send_json({"type": "initiate_call", "to": "+15551234567"})

                for websocket in (first, second):
                    initiating = websocket.receive_json()
                    initiated = websocket.receive_json()
                    assert initiating["type"] == "call_initiating"
                    assert initiated["type"] == "call_initiated"
                    assert initiated["providerCallId"] == "CA123"
                    assert initiated["sessionId"] == initiating["sessionId"]

                with test_client.websocket_connect("/ws") as third:
                    assert third.receive_json()["type"] == "connection_established"
                    third.send_json({"type": "echo", "data": "late"})
                    assert third.receive_json()["type"] == "echo_response"

    def test_direct_to_ghost(self, test_client):
        """Test that a missing direct target only produces an error for the sender."""
        with test_client.websocket_connect("/ws") as sender:
            sender.receive_json()
            with test_client.websocket_connect("/ws") as bystander:
                bystander.receive_json()
                sender.receive_json()

                sender.send_json({"type": "direct", "targetId": "ghost", "data": "hi"})
                error = sender.receive_json()
                assert error["type"] == "error"

                bystander.send_json({"type": "echo", "data": "next"})
                assert bystander.receive_json()["type"] == "echo_response"

    def test_openai_stream(self, test_client):
        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_json({"type": "openai", "prompt": "hello"})

            received = [websocket.receive_json() for _ in range(4)]
            assert [m["type"] for m in received] == [
                "request_started",
                "stream",
                "stream",
                "request_completed",
            ]
            assert [m.get("content") for m in received[1:3]] == ["Hi", " there"]

    def test_get_active_calls(self, test_client):
        test_client.post("/api/calls/initiate", json={"to": "+15551234567"})

        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "get_active_calls"})

            message = websocket.receive_json()
            assert message["type"] == "active_calls_list"
            (summary,) = message["calls"].values()
            assert summary["status"] == "initiated"

    def test_disconnect_is_announced(self, test_client):
        with test_client.websocket_connect("/ws") as first:
            first.receive_json()
            with test_client.websocket_connect("/ws") as second:
                second_id = second.receive_json()["id"]
                first.receive_json()

            left = first.receive_json()
            assert left["type"] == "client_disconnected"
            assert left["id"] == second_id
