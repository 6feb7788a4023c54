"""
Scripted Session Scenarios

Runs a wearable session against the virtual host over the loopback
transport and returns a JSON-serializable report.

Scenarios:
    normal             - host enables the system by push, SOS succeeds
    unreachable        - host goes out of reach before the SOS tap
    activation_failure - transport never starts, SOS sends nothing
    disabled           - system stays disabled, SOS tap is ignored
    connection_loss    - link drops after sync, session fails
"""

import asyncio
from typing import Any, Awaitable, Callable

from ..common.config import LinkConfig
from ..common.logging_setup import get_service_logger
from ..services.session.controller import SessionController
from ..services.transport.loopback import LoopbackTransport
from .virtual_host import VirtualHost

logger = get_service_logger("simulator")


class ScenarioRun:
    """One wearable + host pair wired together on the running loop"""

    def __init__(self, config: LinkConfig):
        loop = asyncio.get_running_loop()
        self.transport = LoopbackTransport(
            loop,
            request_timeout_s=config.transport.request_timeout_s,
            initially_reachable=config.transport.initially_reachable,
            activation_delay_s=config.transport.activation_delay_s,
        )
        self.host = VirtualHost(
            system_enabled=config.host.system_enabled,
            name=config.device.host_name,
        )
        self.host.attach(self.transport)
        self.controller = SessionController(self.transport, name=config.device.name)

        self.steps: list[dict[str, Any]] = []
        self.outcomes: list[dict[str, Any]] = []
        self.controller.add_outcome_listener(lambda outcome: self.outcomes.append(outcome.to_dict()))

    async def step(self, description: str, action: Callable[[], Any] | None = None) -> None:
        """Run an action, let the transport settle, then record the state"""
        result = action() if action is not None else None
        await self.transport.settle()
        self.steps.append({
            "step": description,
            "result": result,
            "state": self.controller.state.value,
            "is_system_enabled": self.controller.current_enabled_flag(),
        })
        logger.info(f"{description}: state={self.controller.state.value}, "
                    f"enabled={self.controller.current_enabled_flag()}")

    def report(self, scenario: str) -> dict[str, Any]:
        return {
            "scenario": scenario,
            "steps": self.steps,
            "outcomes": self.outcomes,
            "session": self.controller.status(),
            "host": {
                "name": self.host.name,
                "system_enabled": self.host.system_enabled,
                "sos_count": self.host.sos_count,
                "requests_received": len(self.host.requests_received),
            },
            "transport": self.transport.get_stats(),
        }


async def _normal(run: ScenarioRun) -> None:
    await run.step("activate", run.controller.activate)
    await run.step("host enables system", lambda: run.host.update_system_state(True))
    await run.step("user taps SOS", run.controller.trigger_sos)


async def _unreachable(run: ScenarioRun) -> None:
    await run.step("host enables system", lambda: run.host.update_system_state(True))
    await run.step("activate", run.controller.activate)

    def lose_reach() -> None:
        run.transport.reachable = False

    await run.step("host goes out of reach", lose_reach)
    await run.step("user taps SOS", run.controller.trigger_sos)


async def _activation_failure(run: ScenarioRun) -> None:
    run.transport.activation_error = ConnectionError("companion app not installed")
    await run.step("activate", run.controller.activate)
    await run.step("user taps SOS", run.controller.trigger_sos)


async def _disabled(run: ScenarioRun) -> None:
    await run.step("activate", run.controller.activate)
    await run.step("host disables system", lambda: run.host.update_system_state(False))
    await run.step("user taps SOS", run.controller.trigger_sos)


async def _connection_loss(run: ScenarioRun) -> None:
    await run.step("host enables system", lambda: run.host.update_system_state(True))
    await run.step("activate", run.controller.activate)
    await run.step("link drops", run.transport.drop)
    await run.step("user taps SOS", run.controller.trigger_sos)


SCENARIOS: dict[str, Callable[[ScenarioRun], Awaitable[None]]] = {
    "normal": _normal,
    "unreachable": _unreachable,
    "activation_failure": _activation_failure,
    "disabled": _disabled,
    "connection_loss": _connection_loss,
}


async def run_scenario(scenario_name: str, config: LinkConfig | None = None) -> dict[str, Any]:
    """
    Run a predefined scenario.

    Args:
        scenario_name: Key of SCENARIOS
        config: Link configuration (defaults if omitted)

    Returns:
        Report dictionary

    Raises:
        KeyError: unknown scenario
    """
    if scenario_name not in SCENARIOS:
        raise KeyError(f"unknown scenario {scenario_name!r}, choose from {sorted(SCENARIOS)}")

    logger.info(f"Running scenario: {scenario_name}")
    run = ScenarioRun(config or LinkConfig())
    await SCENARIOS[scenario_name](run)
    return run.report(scenario_name)
