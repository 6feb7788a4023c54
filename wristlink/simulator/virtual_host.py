"""
Virtual Phone Host

Simulates the phone side of the session so the wearable can be exercised
without a paired device.

Replies:
- requestSystemState -> {"isSystemEnabled": bool, "timestamp": float}
- triggerSOS         -> {"status": "sos_triggered", ...} after calling the SOS handler
- other actions      -> {"status": "unknown_action"}
- no action          -> {"status": "no_action"}

What "enabled" means and what SOS does are injected; this class only
speaks the protocol.
"""

from collections.abc import Mapping
from typing import Any, Callable

from ..common.exceptions import DecodeError
from ..common.logging_setup import get_service_logger
from ..protocol.messages import (
    ACTION_KEY,
    Ack,
    RequestSystemState,
    SystemStateSnapshot,
    TriggerSOS,
    decode_message,
    encode_message,
)
from ..services.transport.loopback import LoopbackTransport

logger = get_service_logger("simulator.host")

SOS_TRIGGERED = "sos_triggered"
UNKNOWN_ACTION = "unknown_action"
NO_ACTION = "no_action"


class VirtualHost:
    """
    Simulated phone host.

    Attributes:
        name: Friendly name for logging
        session_activated: Host-side session state; pushes are skipped while False
        sos_count: Number of SOS commands received
        requests_received: Every request payload, in arrival order
    """

    def __init__(
        self,
        system_enabled: bool = False,
        on_sos: Callable[[], None] | None = None,
        name: str = "phone",
    ):
        self.name = name
        self._system_enabled = system_enabled
        self._on_sos = on_sos
        self._transport: LoopbackTransport | None = None

        self.session_activated = True
        self.sos_count = 0
        self.requests_received: list[Any] = []

    @property
    def system_enabled(self) -> bool:
        return self._system_enabled

    def attach(self, transport: LoopbackTransport) -> None:
        """Answer requests arriving on the given transport"""
        self._transport = transport
        transport.attach_host(self.handle_request)

    def handle_request(self, payload: Any) -> dict[str, Any]:
        """Build the reply for one request payload"""
        self.requests_received.append(payload)

        try:
            message = decode_message(payload)
        except DecodeError as e:
            if isinstance(payload, Mapping) and ACTION_KEY in payload:
                logger.warning(f"Unknown action from wearable: {payload[ACTION_KEY]!r}")
                return {"status": UNKNOWN_ACTION}
            logger.warning(f"Request without action: {e.message}")
            return {"status": NO_ACTION}

        if isinstance(message, RequestSystemState):
            logger.info(f"Sent system state to wearable: {self._system_enabled}")
            return encode_message(SystemStateSnapshot(is_system_enabled=self._system_enabled))

        if isinstance(message, TriggerSOS):
            self.sos_count += 1
            logger.warning(f"SOS triggered from wearable (#{self.sos_count})")
            if self._on_sos is not None:
                self._on_sos()
            return encode_message(Ack(accepted=True, detail=SOS_TRIGGERED))

        # Snapshots and acks are host -> wearable only
        return {"status": NO_ACTION}

    def update_system_state(self, enabled: bool) -> bool:
        """
        Change the flag and push it to the wearable as application context.

        Returns:
            True if the push was handed to the transport
        """
        self._system_enabled = enabled

        if self._transport is None:
            logger.warning("No transport attached, state not pushed")
            return False
        if not self.session_activated:
            logger.warning("Host session not activated, state not pushed")
            return False

        self._transport.push(encode_message(SystemStateSnapshot(is_system_enabled=enabled)))
        logger.info(f"Pushed system state to wearable: {enabled}")
        return True
