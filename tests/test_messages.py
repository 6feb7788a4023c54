"""
Wire codec tests: decoding untyped payloads into message kinds.
"""

from collections import OrderedDict

import pytest

from wristlink.common.exceptions import DecodeError
from wristlink.protocol import messages
from wristlink.protocol.messages import (
    Ack,
    RequestSystemState,
    SystemStateSnapshot,
    TriggerSOS,
    decode_message,
    decode_snapshot,
    encode_message,
    is_application_context,
)


class TestDecodeMessage:

    def test_request_system_state(self):
        assert isinstance(decode_message({"action": "requestSystemState"}), RequestSystemState)

    def test_trigger_sos(self):
        assert isinstance(decode_message({"action": "triggerSOS"}), TriggerSOS)

    def test_snapshot_true(self):
        message = decode_message({"isSystemEnabled": True, "timestamp": 1700000000.0})
        assert isinstance(message, SystemStateSnapshot)
        assert message.is_system_enabled is True

    def test_snapshot_false(self):
        assert decode_message({"isSystemEnabled": False}).is_system_enabled is False

    def test_any_mapping_is_accepted(self):
        message = decode_message(OrderedDict(isSystemEnabled=True))
        assert message.is_system_enabled is True

    @pytest.mark.parametrize("value", [1, 0, "true", None, [True]])
    def test_snapshot_rejects_non_boolean(self, value):
        with pytest.raises(DecodeError) as exc_info:
            decode_message({"isSystemEnabled": value})
        assert "must be a boolean" in exc_info.value.message

    def test_unknown_action(self):
        with pytest.raises(DecodeError, match="unrecognized action"):
            decode_message({"action": "requestPhoneStatus"})

    def test_non_string_action(self):
        with pytest.raises(DecodeError, match="unrecognized action"):
            decode_message({"action": 7})

    def test_action_takes_precedence_over_state(self):
        message = decode_message({"action": "triggerSOS", "isSystemEnabled": True})
        assert isinstance(message, TriggerSOS)

    def test_ack_with_explicit_accepted(self):
        message = decode_message({"status": "sos_triggered", "accepted": True})
        assert message == Ack(accepted=True, detail="sos_triggered")

    def test_ack_accepted_inferred_from_status(self):
        assert decode_message({"status": "sos_triggered"}).accepted is True
        assert decode_message({"status": "unknown_action"}).accepted is False
        assert decode_message({"status": "no_action"}).accepted is False

    def test_malformed_ack(self):
        with pytest.raises(DecodeError, match="malformed acknowledgement"):
            decode_message({"status": 404})

    @pytest.mark.parametrize("raw", [None, "isSystemEnabled", 42, [("isSystemEnabled", True)]])
    def test_non_mapping(self, raw):
        with pytest.raises(DecodeError, match="expected a mapping"):
            decode_message(raw)

    def test_no_recognizable_field(self):
        with pytest.raises(DecodeError, match="no recognizable field") as exc_info:
            decode_message({"timestamp": 5.0})
        assert exc_info.value.raw == {"timestamp": 5.0}


class TestDecodeSnapshot:

    def test_missing_field(self):
        with pytest.raises(DecodeError, match="missing isSystemEnabled"):
            decode_snapshot({"timestamp": 5.0})

    def test_other_kind_is_missing_field(self):
        with pytest.raises(DecodeError, match="missing isSystemEnabled"):
            decode_snapshot({"status": "sos_triggered"})

    def test_valid(self):
        assert decode_snapshot({"isSystemEnabled": True}).is_system_enabled is True


class TestEncodeMessage:

    def test_requests_are_action_dicts(self):
        assert encode_message(RequestSystemState()) == {"action": "requestSystemState"}
        assert encode_message(TriggerSOS()) == {"action": "triggerSOS"}

    def test_snapshot_carries_timestamp(self, monkeypatch):
        monkeypatch.setattr(messages.time, "time", lambda: 123.5)
        assert encode_message(SystemStateSnapshot(is_system_enabled=True)) == {
            "isSystemEnabled": True,
            "timestamp": 123.5,
        }

    def test_encoded_snapshot_decodes(self):
        encoded = encode_message(SystemStateSnapshot(is_system_enabled=False))
        assert decode_snapshot(encoded).is_system_enabled is False

    def test_ack(self):
        encoded = encode_message(Ack(accepted=False, detail="no_action"))
        assert encoded["status"] == "no_action"
        assert encoded["accepted"] is False

    def test_rejects_non_message(self):
        with pytest.raises(TypeError):
            encode_message({"action": "triggerSOS"})


class TestApplicationContext:

    def test_context_shapes(self):
        assert is_application_context({"isSystemEnabled": True}) is True
        assert is_application_context({}) is True

    def test_requests_and_acks_are_not_context(self):
        assert is_application_context({"action": "triggerSOS"}) is False
        assert is_application_context({"status": "sos_triggered"}) is False
        assert is_application_context("text") is False
