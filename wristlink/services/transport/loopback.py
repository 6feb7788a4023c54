"""
Loopback Transport

In-process transport joining a wearable session to a host request handler
on one asyncio event loop. Used by the simulator, the local service run
and the tests.

Behaviour mirrors a phone/watch connectivity session:
- Callbacks always arrive on the event loop, never inline with the caller
- Requests fail fast when the host is unreachable and time out per the
  transport's own policy
- Pushes are application context: latest-only, held while inactive and
  delivered right after activation
"""

import asyncio
import inspect
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Coroutine

from ...common.logging_setup import get_service_logger
from .base import (
    ActivationCallback,
    LossCallback,
    PushCallback,
    ResponseCallback,
    Transport,
)

logger = get_service_logger("transport.loopback")

RequestHandler = Callable[[dict[str, Any]], dict[str, Any] | Awaitable[dict[str, Any]]]


class LoopbackTransport(Transport):
    """
    Loopback transport.

    Attributes:
        reachable: Whether requests currently reach the host
        activation_error: When set, the next activation fails with it
        request_timeout_s: Seconds before an unanswered request fails
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        request_handler: RequestHandler | None = None,
        request_timeout_s: float = 5.0,
        initially_reachable: bool = True,
        activation_delay_s: float = 0.0,
    ):
        self._loop = loop
        self._request_handler = request_handler
        self.request_timeout_s = request_timeout_s
        self.activation_delay_s = activation_delay_s

        self.reachable = initially_reachable
        self.activation_error: Exception | None = None
        self.activated = False

        self._push_handler: PushCallback | None = None
        self._loss_handler: LossCallback | None = None
        self._pending_context: dict[str, Any] | None = None

        self._lock = threading.Lock()
        self._inflight: set[Future] = set()

        # Stats
        self.requests_sent = 0
        self.pushes_delivered = 0

    def attach_host(self, request_handler: RequestHandler) -> None:
        """Attach the host-side request handler"""
        self._request_handler = request_handler

    # ------------------------------------------------------------------
    # Transport contract
    # ------------------------------------------------------------------

    def activate(self, on_complete: ActivationCallback) -> None:
        self._submit(self._activate(on_complete))

    def is_reachable(self) -> bool:
        return self.activated and self.reachable

    def send_request(self, message: dict[str, Any], on_response: ResponseCallback) -> None:
        with self._lock:
            self.requests_sent += 1
        self._submit(self._deliver_request(dict(message), on_response))

    def set_push_handler(self, callback: PushCallback | None) -> None:
        self._push_handler = callback

    def set_loss_handler(self, callback: LossCallback | None) -> None:
        self._loss_handler = callback

    # ------------------------------------------------------------------
    # Host side
    # ------------------------------------------------------------------

    def push(self, payload: dict[str, Any]) -> None:
        """Broadcast application context from the host"""
        self._submit(self._deliver_push(dict(payload)))

    def drop(self, error: Exception | None = None) -> None:
        """Simulate the connection going away"""
        self._submit(self._drop(error or ConnectionError("connection lost")))

    async def settle(self) -> None:
        """Wait until every scheduled delivery (and any it triggered) has run"""
        while True:
            with self._lock:
                pending = [f for f in self._inflight if not f.done()]
            if not pending:
                return
            await asyncio.gather(
                *(asyncio.wrap_future(f, loop=self._loop) for f in pending),
                return_exceptions=True,
            )

    def get_stats(self) -> dict:
        """Get transport statistics"""
        return {
            "activated": self.activated,
            "reachable": self.reachable,
            "requests_sent": self.requests_sent,
            "pushes_delivered": self.pushes_delivered,
            "request_timeout_s": self.request_timeout_s,
        }

    # ------------------------------------------------------------------
    # Internals (run on the event loop)
    # ------------------------------------------------------------------

    def _submit(self, coro: Coroutine) -> None:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._inflight.discard(future)

    async def _activate(self, on_complete: ActivationCallback) -> None:
        if self.activation_delay_s > 0:
            await asyncio.sleep(self.activation_delay_s)

        if self.activation_error is not None:
            logger.warning(f"Activation failed: {self.activation_error}")
            self._invoke(on_complete, self.activation_error, False)
            return

        self.activated = True
        logger.debug(f"Activated (reachable={self.reachable})")
        self._invoke(on_complete, None, self.reachable)

        # Flush context pushed while inactive
        if self._pending_context is not None:
            context, self._pending_context = self._pending_context, None
            await self._deliver_push(context)

    async def _deliver_request(self, payload: dict[str, Any], on_response: ResponseCallback) -> None:
        if not self.is_reachable():
            self._invoke(on_response, ConnectionError("host not reachable"), None)
            return
        if self._request_handler is None:
            self._invoke(on_response, ConnectionError("no host attached"), None)
            return

        try:
            response = await asyncio.wait_for(
                self._call_handler(payload),
                timeout=self.request_timeout_s,
            )
        except asyncio.TimeoutError:
            self._invoke(
                on_response,
                TimeoutError(f"no reply within {self.request_timeout_s}s"),
                None,
            )
            return
        except Exception as e:
            self._invoke(on_response, e, None)
            return

        self._invoke(on_response, None, response)

    async def _call_handler(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = self._request_handler(payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _deliver_push(self, payload: dict[str, Any]) -> None:
        if not self.activated:
            # Latest context wins; older undelivered context is replaced
            self._pending_context = payload
            return

        if self._push_handler is None:
            logger.debug("Push dropped: no handler registered")
            return

        self.pushes_delivered += 1
        self._invoke(self._push_handler, payload)

    async def _drop(self, error: Exception) -> None:
        was_activated = self.activated
        self.activated = False
        self.reachable = False
        logger.info(f"Connection dropped: {error}")
        if was_activated and self._loss_handler is not None:
            self._invoke(self._loss_handler, error)

    def _invoke(self, callback: Callable, *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Transport callback error: {e}", exc_info=True)
