"""
Wire Message Codec

The four message kinds exchanged between wearable and host, and the single
decode step that turns an untyped inbound payload into one of them.

Wire shapes (JSON-compatible dicts):
- RequestSystemState  {"action": "requestSystemState"}
- TriggerSOS          {"action": "triggerSOS"}
- SystemStateSnapshot {"isSystemEnabled": bool, "timestamp": float}
- Ack                 {"status": str, "accepted": bool, "timestamp": float}

Snapshots are used both as the reply to RequestSystemState and as an
unsolicited push; nothing on the wire tells them apart.
"""

import time
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from ..common.exceptions import DecodeError

ACTION_KEY = "action"
STATE_KEY = "isSystemEnabled"
STATUS_KEY = "status"

# Ack statuses the host uses when it did not act on a request
REJECTED_STATUSES = frozenset({"unknown_action", "no_action"})


class Action(str, Enum):
    """Request actions sent from the wearable"""
    REQUEST_SYSTEM_STATE = "requestSystemState"
    TRIGGER_SOS = "triggerSOS"


class RequestSystemState(BaseModel):
    """Query for the host's current enabled flag"""
    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "requestSystemState"


class TriggerSOS(BaseModel):
    """One-shot SOS command"""
    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "triggerSOS"


class SystemStateSnapshot(BaseModel):
    """Current value of the synchronized flag (reply or push)"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")
    kind: ClassVar[str] = "systemStateSnapshot"

    is_system_enabled: StrictBool = Field(alias=STATE_KEY)


class Ack(BaseModel):
    """Host acknowledgement of a command (informational only)"""
    model_config = ConfigDict(frozen=True)
    kind: ClassVar[str] = "ack"

    accepted: bool
    detail: str = ""


class _AckWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: StrictStr
    accepted: StrictBool | None = None


Message = Union[RequestSystemState, TriggerSOS, SystemStateSnapshot, Ack]

_ACTIONS: dict[str, type[BaseModel]] = {
    Action.REQUEST_SYSTEM_STATE.value: RequestSystemState,
    Action.TRIGGER_SOS.value: TriggerSOS,
}


def is_application_context(raw: Any) -> bool:
    """True for payloads shaped like pushed context (neither request nor ack)"""
    return isinstance(raw, Mapping) and ACTION_KEY not in raw and STATUS_KEY not in raw


def decode_message(raw: Any) -> Message:
    """
    Decode an inbound payload into one of the four message kinds.

    Args:
        raw: Payload as delivered by the transport

    Returns:
        The decoded message

    Raises:
        DecodeError: payload is not a mapping, has an unknown action,
            a non-boolean state value, a malformed status, or no
            recognizable field at all
    """
    if not isinstance(raw, Mapping):
        raise DecodeError(f"expected a mapping, got {type(raw).__name__}", raw=raw)

    if ACTION_KEY in raw:
        action = raw[ACTION_KEY]
        message_type = _ACTIONS.get(action) if isinstance(action, str) else None
        if message_type is None:
            raise DecodeError(f"unrecognized action {action!r}", raw=raw)
        return message_type()

    if STATE_KEY in raw:
        try:
            return SystemStateSnapshot.model_validate(dict(raw))
        except ValidationError as e:
            raise DecodeError(
                f"{STATE_KEY} must be a boolean, got {raw[STATE_KEY]!r}", raw=raw
            ) from e

    if STATUS_KEY in raw:
        try:
            wire = _AckWire.model_validate(dict(raw))
        except ValidationError as e:
            raise DecodeError(f"malformed acknowledgement: {e.errors()[0]['msg']}", raw=raw) from e
        accepted = wire.accepted
        if accepted is None:
            accepted = wire.status not in REJECTED_STATUSES
        return Ack(accepted=accepted, detail=wire.status)

    raise DecodeError("no recognizable field", raw=raw)


def decode_snapshot(raw: Any) -> SystemStateSnapshot:
    """
    Decode a payload that must carry the enabled flag.

    Raises:
        DecodeError: the payload has no isSystemEnabled field or is invalid
    """
    if isinstance(raw, Mapping) and STATE_KEY not in raw:
        raise DecodeError(f"missing {STATE_KEY}", raw=raw)

    message = decode_message(raw)
    if not isinstance(message, SystemStateSnapshot):
        raise DecodeError(f"missing {STATE_KEY}", raw=raw)
    return message


def encode_message(message: Message) -> dict[str, Any]:
    """Encode a message into its wire dictionary"""
    if isinstance(message, (RequestSystemState, TriggerSOS)):
        return {ACTION_KEY: message.kind}

    if isinstance(message, SystemStateSnapshot):
        return {
            STATE_KEY: message.is_system_enabled,
            "timestamp": time.time(),
        }

    if isinstance(message, Ack):
        return {
            STATUS_KEY: message.detail,
            "accepted": message.accepted,
            "timestamp": time.time(),
        }

    raise TypeError(f"not a protocol message: {type(message).__name__}")
