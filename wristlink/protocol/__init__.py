"""
Wearable <-> host wire protocol.
"""

from .messages import (
    Action,
    Ack,
    Message,
    RequestSystemState,
    SystemStateSnapshot,
    TriggerSOS,
    decode_message,
    decode_snapshot,
    encode_message,
    is_application_context,
)

__all__ = [
    "Action",
    "Ack",
    "Message",
    "RequestSystemState",
    "SystemStateSnapshot",
    "TriggerSOS",
    "decode_message",
    "decode_snapshot",
    "encode_message",
    "is_application_context",
]
