"""
Shared test fixtures.

RecordingTransport captures every callback instead of invoking it, so
tests decide exactly when (and in which order) the "host" answers.
"""

from typing import Any

import pytest

from wristlink.services.session.controller import SessionController
from wristlink.services.transport.base import Transport


class RecordingTransport(Transport):
    """Transport double that records calls and lets tests complete them"""

    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.activation_callbacks: list = []
        self.sent: list[tuple[dict[str, Any], Any]] = []
        self.push_handler = None
        self.loss_handler = None

    def activate(self, on_complete) -> None:
        self.activation_callbacks.append(on_complete)

    def is_reachable(self) -> bool:
        return self.reachable

    def send_request(self, message, on_response) -> None:
        self.sent.append((message, on_response))

    def set_push_handler(self, callback) -> None:
        self.push_handler = callback

    def set_loss_handler(self, callback) -> None:
        self.loss_handler = callback

    # Test helpers

    def complete_activation(self, error: Exception | None = None, reachable: bool = True) -> None:
        self.activation_callbacks.pop(0)(error, reachable)

    def push(self, raw: Any) -> None:
        self.push_handler(raw)

    def respond(self, response: Any = None, error: Exception | None = None, index: int = -1) -> None:
        _, on_response = self.sent[index]
        on_response(error, response)

    def actions(self) -> list:
        return [message.get("action") for message, _ in self.sent]


@pytest.fixture
def transport():
    """Provide a reachable recording transport."""
    return RecordingTransport()


@pytest.fixture
def controller(transport):
    """Provide a fresh (INACTIVE) controller over the recording transport."""
    return SessionController(transport, name="test-wearable")


@pytest.fixture
def errors(controller):
    """Collect every failure the controller reports."""
    collected = []
    controller.add_error_listener(collected.append)
    return collected


@pytest.fixture
def outcomes(controller):
    """Collect every SOS outcome the controller reports."""
    collected = []
    controller.add_outcome_listener(collected.append)
    return collected


@pytest.fixture
def active_controller(controller, transport):
    """
    Provide an ACTIVE controller with no request in flight.

    Activation completes as unreachable so no state request is sent;
    the transport is made reachable again afterwards.
    """
    controller.activate()
    transport.complete_activation(reachable=False)
    transport.reachable = True
    return controller
