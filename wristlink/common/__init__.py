"""
Common Utilities

Shared modules used across the session components:
- config.py - Configuration dataclasses and YAML loading
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    LinkConfig,
    DeviceSettings,
    TransportSettings,
    ServiceSettings,
    HostSettings,
    load_link_config,
    load_config_file,
)
from .exceptions import (
    WristlinkError,
    ConfigError,
    ActivationError,
    SendError,
    DecodeError,
    UnreachableError,
    SessionStateError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    configure_all,
    log_state_change,
    log_outcome,
    log_decode_failure,
)

__all__ = [
    # Config
    "LinkConfig",
    "DeviceSettings",
    "TransportSettings",
    "ServiceSettings",
    "HostSettings",
    "load_link_config",
    "load_config_file",
    # Exceptions
    "WristlinkError",
    "ConfigError",
    "ActivationError",
    "SendError",
    "DecodeError",
    "UnreachableError",
    "SessionStateError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "configure_all",
    "log_state_change",
    "log_outcome",
    "log_decode_failure",
]
