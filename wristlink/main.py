#!/usr/bin/env python3
"""
WristLink - Entry Point

Usage:
    wristlink run                       # Start the wearable service
    wristlink run --config my.yaml      # Use custom config file
    wristlink --dry-run                 # Print resolved config and exit
    wristlink simulate --scenario normal
    wristlink status --port 8090        # Query a running service
"""

import argparse
import asyncio
import json
import sys

import httpx

from . import __version__
from .common.config import LinkConfig, load_config_file
from .common.exceptions import ConfigError
from .common.logging_setup import configure_all, get_service_logger
from .services.session.service import WearableService
from .simulator.run_simulation import SCENARIOS, run_scenario

logger = get_service_logger("main")

HEALTH_TIMEOUT_SECONDS = 5


def print_startup_banner(config: LinkConfig) -> None:
    """Print startup information."""
    service = config.service

    print()
    print("=" * 60)
    print("  WRISTLINK - WEARABLE SESSION")
    print("=" * 60)
    print()
    print(f"  Wearable: {config.device.name}")
    print(f"  Host:     {config.device.host_name} (virtual)")
    print(f"  Config:   {config.source or 'defaults'}")
    print(f"  Request timeout: {config.transport.request_timeout_s}s")
    print()
    print("  Endpoints:")
    print(f"    GET  http://{service.health_host}:{service.health_port}/health")
    print(f"    POST http://{service.health_host}:{service.health_port}/sos")
    print(f"    POST http://{service.health_host}:{service.health_port}/activate")
    print(f"    POST http://{service.health_host}:{service.health_port}/host/state")
    print()
    print("=" * 60)
    print()


async def run_service(config: LinkConfig) -> None:
    """Run the wearable service until interrupted"""
    service = WearableService(config=config)
    try:
        await service.start()
    finally:
        await service.stop()


def fetch_status(host: str, port: int) -> dict:
    """
    Fetch /health from a running service.

    Raises:
        httpx.HTTPError: service unreachable or returned an error status
    """
    response = httpx.get(f"http://{host}:{port}/health", timeout=HEALTH_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.json()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wristlink",
        description="WristLink - wearable session and SOS protocol",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Scenarios: {', '.join(SCENARIOS)}
        """,
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file (default: search /etc/wristlink, ~/.config/wristlink, ./config.yaml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved configuration and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging in plain text",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"WristLink v{__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run the wearable service")

    simulate = subparsers.add_parser("simulate", help="Run a scripted scenario and print a JSON report")
    simulate.add_argument(
        "--scenario", "-s",
        choices=sorted(SCENARIOS),
        default="normal",
        help="Scenario to run (default: normal)",
    )

    status = subparsers.add_parser("status", help="Query the health endpoint of a running service")
    status.add_argument("--host", default=None, help="Service host (default: from config)")
    status.add_argument("--port", "-p", type=int, default=None, help="Service port (default: from config)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config_file(args.config)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.verbose:
        config.service.log_level = "DEBUG"
        config.service.log_format = "text"
    configure_all(config.service.log_level, config.service.log_format == "json")

    if args.dry_run:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    command = args.command or "run"

    if command == "simulate":
        report = asyncio.run(run_scenario(args.scenario, config))
        print(json.dumps(report, indent=2, default=str))
        return 0

    if command == "status":
        host = args.host or config.service.health_host
        port = args.port or config.service.health_port
        try:
            print(json.dumps(fetch_status(host, port), indent=2))
        except httpx.HTTPError as e:
            print(f"Error: could not reach service at {host}:{port}: {e}", file=sys.stderr)
            return 1
        return 0

    print_startup_banner(config)
    print("Press Ctrl+C to stop")
    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        print("\nStopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
