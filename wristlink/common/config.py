"""
Configuration Dataclasses

Type-safe configuration structures for the wearable session.
Loaded from a local YAML file; every field has a default so a missing
file still produces a working config.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("config")

CONFIG_SEARCH_PATHS = [
    Path("/etc/wristlink/config.yaml"),
    Path.home() / ".config" / "wristlink" / "config.yaml",
    Path("config.yaml"),
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


@dataclass
class DeviceSettings:
    """Identity of the two endpoints (used in logs and health output)"""
    name: str = "wearable"
    host_name: str = "phone"


@dataclass
class TransportSettings:
    """Loopback transport policy (the session core never reads these)"""
    request_timeout_s: float = 5.0
    initially_reachable: bool = True
    activation_delay_s: float = 0.0


@dataclass
class ServiceSettings:
    """Process-level settings for the wearable service"""
    health_host: str = "127.0.0.1"
    health_port: int = 8090
    log_level: str = "INFO"
    log_format: str = "json"  # json, text


@dataclass
class HostSettings:
    """Initial state of the virtual phone host"""
    system_enabled: bool = False


@dataclass
class LinkConfig:
    """Complete configuration"""
    device: DeviceSettings = field(default_factory=DeviceSettings)
    transport: TransportSettings = field(default_factory=TransportSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)
    host: HostSettings = field(default_factory=HostSettings)

    # Where it was loaded from ("" = defaults)
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for printing"""
        return asdict(self)


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"section '{name}' must be a mapping", key=name)
    return section


def _number(section: dict, key: str, default: float, minimum: float = 0.0) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}", key=key)
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}", key=key)
    return float(value)


def _flag(section: dict, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}", key=key)
    return value


def load_link_config(data: dict | None, source: str = "") -> LinkConfig:
    """Load LinkConfig from dictionary (e.g., parsed YAML)"""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping")

    device_data = _section(data, "device")
    device = DeviceSettings(
        name=str(device_data.get("name", "wearable")),
        host_name=str(device_data.get("host_name", "phone")),
    )

    transport_data = _section(data, "transport")
    request_timeout_s = _number(transport_data, "request_timeout_s", 5.0)
    if request_timeout_s == 0:
        raise ConfigError("'request_timeout_s' must be > 0", key="request_timeout_s")
    transport = TransportSettings(
        request_timeout_s=request_timeout_s,
        initially_reachable=_flag(transport_data, "initially_reachable", True),
        activation_delay_s=_number(transport_data, "activation_delay_s", 0.0),
    )

    service_data = _section(data, "service")
    log_level = str(service_data.get("log_level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"unknown log_level {log_level!r}", key="log_level")
    log_format = str(service_data.get("log_format", "json")).lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"unknown log_format {log_format!r}", key="log_format")
    health_port = service_data.get("health_port", 8090)
    if isinstance(health_port, bool) or not isinstance(health_port, int) or not 0 <= health_port <= 65535:
        raise ConfigError(f"invalid health_port {health_port!r}", key="health_port")
    service = ServiceSettings(
        health_host=str(service_data.get("health_host", "127.0.0.1")),
        health_port=health_port,
        log_level=log_level,
        log_format=log_format,
    )

    host_data = _section(data, "host")
    host = HostSettings(
        system_enabled=_flag(host_data, "system_enabled", False),
    )

    return LinkConfig(
        device=device,
        transport=transport,
        service=service,
        host=host,
        source=source,
    )


def find_config_path() -> Path | None:
    """Return the first existing config file from the search path"""
    for path in CONFIG_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def load_config_file(config_path: str | Path | None = None) -> LinkConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Explicit path; when None the search path is used

    Returns:
        Parsed LinkConfig (defaults if no file is found)

    Raises:
        ConfigError: explicit path missing, YAML malformed, or values invalid
    """
    if config_path is None:
        path = find_config_path()
        if path is None:
            logger.warning("No config file found, using defaults")
            return LinkConfig()
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing {path}: {e}") from e

    config = load_link_config(data, source=str(path))
    logger.info(f"Loaded config from {path}")
    return config
