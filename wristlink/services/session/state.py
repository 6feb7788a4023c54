"""
Session State Dataclasses

Data structures owned by the session controller.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from ...common.exceptions import WristlinkError
from ...common.logging_setup import get_service_logger
from ...protocol.messages import Ack

logger = get_service_logger("session.state")


class SessionState(str, Enum):
    """Transport lifecycle, independent of the enabled flag"""
    INACTIVE = "inactive"
    ACTIVATING = "activating"
    ACTIVE = "active"
    FAILED = "failed"


# Allowed lifecycle transitions
TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.INACTIVE: frozenset({SessionState.ACTIVATING}),
    SessionState.ACTIVATING: frozenset({SessionState.ACTIVE, SessionState.FAILED}),
    SessionState.ACTIVE: frozenset({SessionState.FAILED}),
    SessionState.FAILED: frozenset({SessionState.ACTIVATING}),
}


@dataclass(frozen=True)
class SOSOutcome:
    """Result of one SOS attempt that passed the enabled gate"""
    success: bool
    reason: str
    response: Ack | None = None
    error: WristlinkError | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and health output"""
        return {
            "success": self.success,
            "reason": self.reason,
            "response": self.response.model_dump() if self.response else None,
            "error": type(self.error).__name__ if self.error else None,
            "timestamp": self.timestamp.isoformat(),
        }


class ObservableFlag:
    """
    Boolean value with change subscriptions.

    Reads take the lock, so they are safe from any thread. Subscribers
    are called outside the lock, only when the value actually changes.
    """

    def __init__(self, initial: bool = False):
        self._value = initial
        self._lock = threading.Lock()
        self._subscribers: list[Callable[[bool], None]] = []

    @property
    def value(self) -> bool:
        with self._lock:
            return self._value

    def __bool__(self) -> bool:
        return self.value

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """
        Register a change callback.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set(self, value: bool) -> bool:
        """
        Store a new value.

        Returns:
            True if the value changed
        """
        changed, subscribers = self.store(value)
        self.notify(subscribers, value)
        return changed

    def store(self, value: bool) -> tuple[bool, list[Callable[[bool], None]]]:
        """
        Store a new value without notifying anyone.

        Lets an owner holding its own lock write the value there and call
        notify() once that lock is released.

        Returns:
            (changed, subscribers to notify); the list is empty when unchanged
        """
        with self._lock:
            changed = self._value != value
            self._value = value
            return changed, list(self._subscribers) if changed else []

    def notify(self, subscribers: list[Callable[[bool], None]], value: bool) -> None:
        """Call subscribers returned by store(); must run outside any owner lock"""
        for callback in subscribers:
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Flag subscriber error: {e}", exc_info=True)
