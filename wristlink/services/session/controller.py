"""
Session Controller - Wearable Side

Owns the session lifecycle and the mirrored "system enabled" flag:
- Activates the transport and fetches the initial state once reachable
- Applies host-pushed snapshots (latest processed wins)
- Sends the one-shot SOS command, gated on the cached flag
- Reports every failure to logs and listeners, never raises

State machine:
    INACTIVE --activate()--> ACTIVATING --(ok)--> ACTIVE
                                        --(err)--> FAILED
    ACTIVE --(transport lost)--> FAILED
    FAILED --activate()--> ACTIVATING

All writes to the session state and the flag happen under one lock.
Transport callbacks may arrive on any thread.
"""

import threading
from typing import Any, Callable

from ...common.exceptions import (
    ActivationError,
    DecodeError,
    SendError,
    SessionStateError,
    UnreachableError,
    WristlinkError,
)
from ...common.logging_setup import (
    get_service_logger,
    log_decode_failure,
    log_outcome,
    log_state_change,
)
from ...protocol.messages import (
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
from ..transport.base import Transport
from .state import TRANSITIONS, ObservableFlag, SessionState, SOSOutcome

logger = get_service_logger("session")

OutcomeListener = Callable[[SOSOutcome], None]
ErrorListener = Callable[[WristlinkError], None]


class SessionController:
    """
    Wearable session controller.

    One instance per wearable process, built by the entry point and handed
    to whatever renders the flag. Nothing here is a module-level default.

    Attributes:
        is_system_enabled: Observable mirror of the host's flag
        last_error: Most recent reported failure (side channel for the UI)
        last_outcome: Most recent SOS outcome
    """

    def __init__(self, transport: Transport, name: str = "wearable"):
        self.transport = transport
        self.name = name

        self.is_system_enabled = ObservableFlag(False)
        self.last_error: WristlinkError | None = None
        self.last_outcome: SOSOutcome | None = None

        self._state = SessionState.INACTIVE
        self._lock = threading.RLock()
        self._outcome_listeners: list[OutcomeListener] = []
        self._error_listeners: list[ErrorListener] = []

        self._counters = {
            "snapshots_applied": 0,
            "decode_failures": 0,
            "messages_dropped": 0,
            "state_requests_sent": 0,
            "sos_sent": 0,
            "sos_succeeded": 0,
            "sos_failed": 0,
            "errors": 0,
        }

        transport.set_push_handler(self._on_push)
        transport.set_loss_handler(self.on_transport_lost)

    # ------------------------------------------------------------------
    # Presentation-facing surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def current_enabled_flag(self) -> bool:
        """Cached flag; never waits on the network"""
        return self.is_system_enabled.value

    def activate(self) -> None:
        """
        Request transport activation.

        Ignored while already activating or active. From INACTIVE or FAILED
        it starts a fresh activation; there is no automatic retry.
        """
        with self._lock:
            if self._state in (SessionState.ACTIVATING, SessionState.ACTIVE):
                logger.debug(f"activate() ignored: session already {self._state.value}")
                return
            self._transition(SessionState.ACTIVATING)

        try:
            self.transport.activate(self._on_activation_complete)
        except Exception as e:
            self._on_activation_complete(e, False)

    def trigger_sos(self) -> bool:
        """
        Send the SOS command if the system is enabled.

        A disabled flag or a session that is not active makes this a
        no-op, whatever the cached flag says. Otherwise the outcome is
        reported to outcome listeners, immediately when the host is
        unreachable and from the transport callback once the host answers.

        Returns:
            True if the command was handed to the transport
        """
        with self._lock:
            enabled = self.is_system_enabled.value
            state = self._state

        if not enabled:
            logger.debug("SOS ignored: system disabled")
            return False

        if state != SessionState.ACTIVE:
            logger.info(f"SOS ignored: session {state.value}")
            return False

        if not self.transport.is_reachable():
            error = UnreachableError(action=TriggerSOS.kind)
            self._finish_sos(SOSOutcome(success=False, reason=error.message, error=error))
            return False

        with self._lock:
            self._counters["sos_sent"] += 1
        self._send(TriggerSOS(), self._on_sos_response)
        return True

    def request_system_state(self) -> bool:
        """
        Ask the host for the current flag.

        Runs automatically after an activation that finds the host
        reachable; can also be called to resync by hand.

        Returns:
            True if the request was handed to the transport
        """
        with self._lock:
            state = self._state

        if state != SessionState.ACTIVE:
            self._report(SessionStateError(state.value, action=RequestSystemState.kind))
            return False

        if not self.transport.is_reachable():
            self._report(UnreachableError(action=RequestSystemState.kind))
            return False

        with self._lock:
            self._counters["state_requests_sent"] += 1
        self._send(RequestSystemState(), self._on_state_response)
        return True

    def add_outcome_listener(self, listener: OutcomeListener) -> Callable[[], None]:
        """Register for SOS outcomes. Returns an unsubscribe function."""
        return self._add_listener(self._outcome_listeners, listener)

    def add_error_listener(self, listener: ErrorListener) -> Callable[[], None]:
        """Register for reported failures. Returns an unsubscribe function."""
        return self._add_listener(self._error_listeners, listener)

    def status(self) -> dict[str, Any]:
        """Point-in-time session summary for health output"""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "is_system_enabled": self.is_system_enabled.value,
                "reachable": self.transport.is_reachable(),
                "last_error": self.last_error.message if self.last_error else None,
                "last_outcome": self.last_outcome.to_dict() if self.last_outcome else None,
                "counters": dict(self._counters),
            }

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def on_pushed_snapshot(self, raw: Any) -> None:
        """Apply unsolicited context from the host (always wins)"""
        try:
            snapshot = decode_snapshot(raw)
        except DecodeError as e:
            self._report_decode_failure("push", e)
            return
        self._apply_snapshot(snapshot, source="push")

    def on_inbound_message(self, raw: Any) -> None:
        """Catch-all for pushed payloads that are not context: logged and dropped"""
        with self._lock:
            self._counters["messages_dropped"] += 1
        try:
            message = decode_message(raw)
        except DecodeError as e:
            logger.info(f"Dropped unrecognized message: {e.message}", extra={"raw": raw})
            return
        logger.info(f"Dropped unsolicited {message.kind} message")

    def on_transport_lost(self, error: Exception) -> None:
        """Transport signalled loss: ACTIVE -> FAILED, no reconnect"""
        with self._lock:
            if self._state != SessionState.ACTIVE:
                logger.debug(f"Transport loss ignored in state {self._state.value}")
                return
            self._transition(SessionState.FAILED, reason=str(error))
        self._report(ActivationError(f"transport lost: {error}", cause=error))

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_push(self, raw: Any) -> None:
        if is_application_context(raw):
            self.on_pushed_snapshot(raw)
        else:
            self.on_inbound_message(raw)

    def _on_activation_complete(self, error: Exception | None, reachable: bool) -> None:
        with self._lock:
            if self._state != SessionState.ACTIVATING:
                logger.warning(f"Late activation result ignored in state {self._state.value}")
                return
            if error is not None:
                self._transition(SessionState.FAILED, reason=str(error))
            else:
                self._transition(SessionState.ACTIVE)

        if error is not None:
            self._report(ActivationError(str(error) or type(error).__name__, cause=error))
            return

        if reachable:
            self.request_system_state()
        else:
            logger.info("Host not reachable after activation, waiting for pushed context")

    def _on_state_response(self, error: Exception | None, response: Any) -> None:
        if error is not None:
            self._report(SendError(
                str(error) or type(error).__name__,
                action=RequestSystemState.kind,
                cause=error,
            ))
            return

        try:
            snapshot = decode_snapshot(response)
        except DecodeError as e:
            self._report_decode_failure("response", e)
            return
        self._apply_snapshot(snapshot, source="response")

    def _on_sos_response(self, error: Exception | None, response: Any) -> None:
        if error is not None:
            send_error = SendError(
                str(error) or type(error).__name__,
                action=TriggerSOS.kind,
                cause=error,
            )
            self._finish_sos(SOSOutcome(success=False, reason=send_error.message, error=send_error))
            return

        try:
            message = decode_message(response)
        except DecodeError as e:
            # The host answered, so the command was delivered
            self._report_decode_failure("ack", e)
            self._finish_sos(SOSOutcome(success=True, reason="delivered (unreadable acknowledgement)"))
            return

        if not isinstance(message, Ack):
            self._finish_sos(SOSOutcome(success=True, reason=f"delivered (replied with {message.kind})"))
        elif message.accepted:
            self._finish_sos(SOSOutcome(success=True, reason=message.detail or "acknowledged", response=message))
        else:
            self._finish_sos(SOSOutcome(
                success=False,
                reason=f"rejected by host: {message.detail}",
                response=message,
            ))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(self, message: Message, callback: Callable[[Exception | None, Any], None]) -> None:
        logger.info(f"Sending {message.kind}", extra={"action": message.kind})
        try:
            self.transport.send_request(encode_message(message), callback)
        except Exception as e:
            callback(e, None)

    def _apply_snapshot(self, snapshot: SystemStateSnapshot, source: str) -> None:
        with self._lock:
            changed, subscribers = self.is_system_enabled.store(snapshot.is_system_enabled)
            self._counters["snapshots_applied"] += 1

        self.is_system_enabled.notify(subscribers, snapshot.is_system_enabled)

        if changed:
            logger.info(
                f"System {'enabled' if snapshot.is_system_enabled else 'disabled'} (from {source})",
                extra={"is_system_enabled": snapshot.is_system_enabled, "source": source},
            )
        else:
            logger.debug(f"Snapshot from {source} unchanged: {snapshot.is_system_enabled}")

    def _transition(self, new_state: SessionState, reason: str | None = None) -> None:
        # Caller holds the lock
        if new_state not in TRANSITIONS[self._state]:
            raise SessionStateError(self._state.value, action=f"transition to {new_state.value}")
        old_state = self._state
        self._state = new_state
        log_state_change(logger, old_state.value, new_state.value, reason)

    def _finish_sos(self, outcome: SOSOutcome) -> None:
        with self._lock:
            self.last_outcome = outcome
            self._counters["sos_succeeded" if outcome.success else "sos_failed"] += 1

        log_outcome(logger, TriggerSOS.kind, outcome.success, outcome.reason)
        if outcome.error is not None:
            self._report(outcome.error, log=False)

        for listener in self._snapshot_listeners(self._outcome_listeners):
            try:
                listener(outcome)
            except Exception as e:
                logger.error(f"Outcome listener error: {e}", exc_info=True)

    def _report_decode_failure(self, source: str, error: DecodeError) -> None:
        with self._lock:
            self._counters["decode_failures"] += 1
        log_decode_failure(logger, source, error)
        self._report(error, log=False)

    def _report(self, error: WristlinkError, log: bool = True) -> None:
        with self._lock:
            self.last_error = error
            self._counters["errors"] += 1

        if log:
            logger.error(error.message, extra={"error_type": type(error).__name__})

        for listener in self._snapshot_listeners(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                logger.error(f"Error listener error: {e}", exc_info=True)

    def _add_listener(self, listeners: list, listener: Callable) -> Callable[[], None]:
        with self._lock:
            listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in listeners:
                    listeners.remove(listener)

        return remove

    def _snapshot_listeners(self, listeners: list) -> list:
        with self._lock:
            return list(listeners)
