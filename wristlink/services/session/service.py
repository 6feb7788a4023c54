"""
Wearable Service - Process Owner

Builds and owns the single session controller for this process:
- Loads configuration
- Wires the loopback transport to the virtual phone host
- Activates the session
- Serves a local HTTP API for health checks and the presentation layer

Endpoints:
    GET  /health      - session state, flag, counters
    POST /activate    - re-run activation (e.g. after a failure)
    POST /sos         - the SOS tap
    POST /host/state  - {"enabled": bool}, make the virtual host push a new state
"""

import asyncio
import signal
from datetime import datetime, timezone
from pathlib import Path

from aiohttp import web

from ...common.config import LinkConfig, load_config_file
from ...common.logging_setup import get_service_logger
from ...simulator.virtual_host import VirtualHost
from ..transport.loopback import LoopbackTransport
from .controller import SessionController

logger = get_service_logger("service")


class WearableService:
    """
    Wearable Service

    Owns the transport, the virtual host and the one SessionController,
    and exposes them over a small aiohttp app.
    """

    def __init__(self, config: LinkConfig | None = None, config_path: str | Path | None = None):
        self.config = config or load_config_file(config_path)

        self.transport: LoopbackTransport | None = None
        self.host: VirtualHost | None = None
        self.controller: SessionController | None = None

        # Health server
        self._health_app: web.Application | None = None
        self._health_runner: web.AppRunner | None = None

        self._shutdown_event = asyncio.Event()
        self._is_running = False
        self._start_time = datetime.now(timezone.utc)

    def build(self, loop: asyncio.AbstractEventLoop) -> SessionController:
        """Create transport, host and controller on the given loop"""
        transport_settings = self.config.transport

        self.transport = LoopbackTransport(
            loop,
            request_timeout_s=transport_settings.request_timeout_s,
            initially_reachable=transport_settings.initially_reachable,
            activation_delay_s=transport_settings.activation_delay_s,
        )
        self.host = VirtualHost(
            system_enabled=self.config.host.system_enabled,
            name=self.config.device.host_name,
        )
        self.host.attach(self.transport)
        self.controller = SessionController(self.transport, name=self.config.device.name)
        return self.controller

    def create_app(self) -> web.Application:
        """Build the aiohttp application (components must be built first)"""
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_post("/activate", self._activate_handler)
        app.router.add_post("/sos", self._sos_handler)
        app.router.add_post("/host/state", self._host_state_handler)
        return app

    async def start(self) -> None:
        """Start the wearable service and run until a shutdown signal"""
        logger.info("Starting Wearable Service")

        self.build(asyncio.get_running_loop())
        await self._start_health_server()

        self.controller.activate()
        self._is_running = True

        logger.info(
            f"Wearable Service started ({self.config.device.name} <-> {self.config.device.host_name})",
            extra={
                "device": self.config.device.name,
                "host": self.config.device.host_name,
                "config_source": self.config.source or "defaults",
            },
        )

        self._setup_signal_handlers()
        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop the wearable service"""
        logger.info("Stopping Wearable Service")
        self._is_running = False

        if self.transport is not None:
            await self.transport.settle()

        await self._stop_health_server()
        logger.info("Wearable Service stopped")

    def request_shutdown(self) -> None:
        """Ask start() to return"""
        self._shutdown_event.set()

    def health_payload(self) -> dict:
        """Build the /health response body"""
        session = self.controller.status() if self.controller else None
        healthy = self._is_running and session is not None and session["state"] == "active"

        return {
            "status": "healthy" if healthy else "degraded",
            "service": "wearable",
            "uptime": int((datetime.now(timezone.utc) - self._start_time).total_seconds()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session": session,
            "transport": self.transport.get_stats() if self.transport else None,
            "host": {
                "name": self.host.name,
                "system_enabled": self.host.system_enabled,
                "sos_count": self.host.sos_count,
            } if self.host else None,
        }

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: self._handle_shutdown())

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    async def _start_health_server(self) -> None:
        """Start the health check HTTP server"""
        service_settings = self.config.service

        self._health_app = self.create_app()
        self._health_runner = web.AppRunner(self._health_app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, service_settings.health_host, service_settings.health_port)
        await site.start()

        logger.info(f"Health server started on {service_settings.health_host}:{service_settings.health_port}")

    async def _stop_health_server(self) -> None:
        """Stop the health check HTTP server"""
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.health_payload())

    async def _activate_handler(self, request: web.Request) -> web.Response:
        self.controller.activate()
        await self.transport.settle()
        return web.json_response({"state": self.controller.state.value})

    async def _sos_handler(self, request: web.Request) -> web.Response:
        previous = self.controller.last_outcome
        sent = self.controller.trigger_sos()
        await self.transport.settle()

        # None when the tap was ignored (system disabled)
        outcome = self.controller.last_outcome
        if outcome is previous:
            outcome = None

        return web.json_response({
            "sent": sent,
            "is_system_enabled": self.controller.current_enabled_flag(),
            "outcome": outcome.to_dict() if outcome else None,
        })

    async def _host_state_handler(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "body must be JSON"}, status=400)

        enabled = body.get("enabled") if isinstance(body, dict) else None
        if not isinstance(enabled, bool):
            return web.json_response({"error": "'enabled' must be true or false"}, status=400)

        pushed = self.host.update_system_state(enabled)
        await self.transport.settle()
        return web.json_response({
            "pushed": pushed,
            "is_system_enabled": self.controller.current_enabled_flag(),
        })


async def main(config_path: str | Path | None = None) -> None:
    """Main entry point"""
    service = WearableService(config_path=config_path)

    try:
        await service.start()
    finally:
        await service.stop()


if __name__ == "__main__":
    asyncio.run(main())
