"""
Transport Contract

What the session controller needs from the messaging layer underneath it.
Any channel (watch connectivity bridge, BLE link, loopback) can back a
session as long as it implements this base class.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

# (error or None, initially_reachable)
ActivationCallback = Callable[[Exception | None, bool], None]
# (error or None, response payload or None)
ResponseCallback = Callable[[Exception | None, Any], None]
PushCallback = Callable[[Any], None]
LossCallback = Callable[[Exception], None]


class Transport(ABC):
    """Base class for all wearable <-> host transports"""

    @abstractmethod
    def activate(self, on_complete: ActivationCallback) -> None:
        """
        Start the channel.

        on_complete is called exactly once, possibly from another thread,
        with (None, reachable) on success or (error, False) on failure.
        """

    @abstractmethod
    def is_reachable(self) -> bool:
        """Point-in-time reachability. Must not perform I/O."""

    @abstractmethod
    def send_request(self, message: dict[str, Any], on_response: ResponseCallback) -> None:
        """
        Send a request payload to the host.

        on_response is called exactly once per call with either
        (None, response) or (error, None).
        """

    @abstractmethod
    def set_push_handler(self, callback: PushCallback | None) -> None:
        """Register the receiver for unsolicited host payloads"""

    def set_loss_handler(self, callback: LossCallback | None) -> None:
        """Register the receiver for connection-loss signals (optional)"""
