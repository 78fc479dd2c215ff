"""Tests for relay wire message decoding and encoding."""

import json

import pytest

from rendezvous.protocol import (
    ErrorCode,
    MessageDecodeError,
    PingMessage,
    RegisterMessage,
    SignalMessage,
    create_connected,
    create_error,
    create_pong,
    create_registered,
    create_signal_delivery,
    decode_message,
    encode_message,
)


class TestDecodeRegister:
    def test_current_field_name(self) -> None:
        msg = decode_message('{"type": "register", "agentId": "alice"}')
        assert isinstance(msg, RegisterMessage)
        assert msg.agent_id == "alice"
        assert msg.connection_info == {}

    @pytest.mark.parametrize("field", ["clientId", "agent_id"])
    def test_legacy_field_names(self, field: str) -> None:
        msg = decode_message(json.dumps({"type": "register", field: "alice"}))
        assert isinstance(msg, RegisterMessage)
        assert msg.agent_id == "alice"

    def test_connection_info_is_kept(self) -> None:
        raw = json.dumps({
            "type": "register",
            "agentId": "alice",
            "connectionInfo": {"ip": "10.0.0.2", "nat": "symmetric"},
        })
        msg = decode_message(raw)
        assert msg.connection_info == {"ip": "10.0.0.2", "nat": "symmetric"}

    def test_empty_agent_id_rejected(self) -> None:
        with pytest.raises(MessageDecodeError):
            decode_message('{"type": "register", "agentId": ""}')

    def test_missing_agent_id_rejected(self) -> None:
        with pytest.raises(MessageDecodeError):
            decode_message('{"type": "register"}')


class TestDecodeSignal:
    def test_current_field_names(self) -> None:
        raw = json.dumps({
            "type": "signal",
            "targetAgentId": "bob",
            "fromAgentId": "alice",
            "signal": {"type": "offer", "sdp": "v=0"},
        })
        msg = decode_message(raw)
        assert isinstance(msg, SignalMessage)
        assert msg.target_agent_id == "bob"
        assert msg.from_agent_id == "alice"
        assert msg.payload == {"type": "offer", "sdp": "v=0"}

    def test_alternate_field_names(self) -> None:
        raw = json.dumps({"type": "signal", "to": "bob", "from": "alice", "payload": "candidate"})
        msg = decode_message(raw)
        assert msg.target_agent_id == "bob"
        assert msg.from_agent_id == "alice"
        assert msg.payload == "candidate"

    def test_from_is_optional(self) -> None:
        msg = decode_message('{"type": "signal", "target": "bob", "data": [1, 2]}')
        assert msg.from_agent_id is None
        assert msg.payload == [1, 2]

    def test_missing_payload_rejected(self) -> None:
        with pytest.raises(MessageDecodeError):
            decode_message('{"type": "signal", "targetAgentId": "bob"}')

    def test_missing_target_rejected(self) -> None:
        with pytest.raises(MessageDecodeError):
            decode_message('{"type": "signal", "signal": {}}')


class TestDecodeMalformed:
    def test_ping(self) -> None:
        assert isinstance(decode_message('{"type": "ping"}'), PingMessage)

    def test_bytes_are_decoded_as_utf8(self) -> None:
        msg = decode_message('{"type": "register", "agentId": "émile"}'.encode("utf-8"))
        assert msg.agent_id == "émile"

    @pytest.mark.parametrize("raw", [
        "not json",
        "",
        "[1, 2, 3]",
        '"register"',
        '{"agentId": "alice"}',
        '{"type": "subscribe"}',
        '{"type": "pong"}',
        '{"type": "registered", "agentId": "alice"}',
        '{"type": 7}',
    ])
    def test_rejected(self, raw: str) -> None:
        with pytest.raises(MessageDecodeError):
            decode_message(raw)

    def test_invalid_utf8_rejected(self) -> None:
        with pytest.raises(MessageDecodeError, match="UTF-8"):
            decode_message(b"\xff\xfe{}")


class TestEncode:
    def test_connected(self) -> None:
        assert json.loads(encode_message(create_connected("c1"))) == {
            "type": "connected",
            "connectionId": "c1",
        }

    def test_registered(self) -> None:
        assert json.loads(encode_message(create_registered("alice"))) == {
            "type": "registered",
            "status": "online",
            "agentId": "alice",
        }

    def test_signal_delivery_uses_from(self) -> None:
        frame = json.loads(encode_message(create_signal_delivery("alice", {"sdp": "x"})))
        assert frame == {"type": "signal", "from": "alice", "signal": {"sdp": "x"}}

    def test_pong(self) -> None:
        assert json.loads(encode_message(create_pong())) == {"type": "pong"}

    def test_error(self) -> None:
        frame = json.loads(encode_message(
            create_error(ErrorCode.TARGET_OFFLINE, "Target agent bob is not online", "bob")
        ))
        assert frame == {
            "type": "error",
            "code": "TARGET_OFFLINE",
            "message": "Target agent bob is not online",
            "targetAgentId": "bob",
        }
