"""
End-to-end WebSocket tests through the FastAPI app.
"""

import pytest
from fastapi.testclient import TestClient

from rendezvous.config import RelaySettings
from rendezvous.storage.memory import InMemoryProfileStore
from rendezvous.transport.app import create_app


@pytest.fixture
def client():
    app = create_app(RelaySettings(), profiles=InMemoryProfileStore())
    with TestClient(app) as test_client:
        yield test_client


class TestWebSocketEndpoint:
    def test_register_and_ping(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["type"] == "connected"

            ws.send_json({"type": "register", "agentId": "alice"})
            assert ws.receive_json() == {"type": "registered", "status": "online", "agentId": "alice"}

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            assert client.get("/health").json()["agents"] == 1

    def test_root_path_also_serves_websocket(self, client: TestClient) -> None:
        with client.websocket_connect("/") as ws:
            assert ws.receive_json()["type"] == "connected"
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_signal_between_two_peers(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            alice.receive_json()
            bob.receive_json()
            alice.send_json({"type": "register", "agentId": "alice"})
            alice.receive_json()
            bob.send_json({"type": "register", "agentId": "bob"})
            bob.receive_json()

            alice.send_json({
                "type": "signal",
                "targetAgentId": "bob",
                "signal": {"type": "offer", "sdp": "v=0"},
            })
            assert bob.receive_json() == {
                "type": "signal",
                "from": "alice",
                "signal": {"type": "offer", "sdp": "v=0"},
            }

            bob.send_json({"type": "signal", "targetAgentId": "alice", "signal": {"type": "answer"}})
            assert alice.receive_json() == {
                "type": "signal",
                "from": "bob",
                "signal": {"type": "answer"},
            }

    def test_signal_to_offline_target(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "register", "agentId": "alice"})
            ws.receive_json()

            ws.send_json({"type": "signal", "targetAgentId": "ghost", "signal": {}})

            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["code"] == "TARGET_OFFLINE"
            assert error["targetAgentId"] == "ghost"

    def test_malformed_frame_keeps_connection(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("this is not json")
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_presence_follows_connection(self, client: TestClient) -> None:
        client.post("/api/agents/register", json={"agentId": "alice", "publicKey": "pk"})

        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "register", "agentId": "alice"})
            ws.receive_json()
            assert client.get("/api/agents/alice/status").json()["isOnline"] is True

        assert client.get("/api/agents/alice/status").json()["isOnline"] is False
        assert client.get("/health").json()["agents"] == 0
