"""
Structured Logging Setup

Consistent logging configuration across the wearable session components.
Uses JSON format for structured logs by default.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName",
))


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed via `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a component.

    Args:
        service_name: Name of the component (e.g., "session", "transport")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for devices, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"wristlink.{service_name}")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    WRISTLINK_LOG_LEVEL and WRISTLINK_LOG_FORMAT override the defaults.

    Args:
        service_name: Name of the component

    Returns:
        Logger adapter with service name in all logs
    """
    log_level = os.environ.get("WRISTLINK_LOG_LEVEL", "INFO")
    json_format = os.environ.get("WRISTLINK_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def configure_all(log_level: str, json_format: bool) -> None:
    """
    Re-apply level and format to every logger already created under wristlink.*

    Used by the entry point once the config file has been read.
    """
    for name, existing in list(logging.root.manager.loggerDict.items()):
        if not name.startswith("wristlink.") or not isinstance(existing, logging.Logger):
            continue
        setup_logging(name[len("wristlink."):], log_level, json_format)


# Convenience loggers for common session events
def log_state_change(
    logger: logging.Logger,
    old_state: str,
    new_state: str,
    reason: str | None = None,
) -> None:
    """Log a session state transition"""
    message = f"Session {old_state} -> {new_state}"
    if reason:
        message += f" ({reason})"
    logger.info(
        message,
        extra={"old_state": old_state, "new_state": new_state, "reason": reason},
    )


def log_outcome(
    logger: logging.Logger,
    action: str,
    success: bool,
    reason: str,
) -> None:
    """Log the outcome of an outbound request"""
    if success:
        logger.info(
            f"{action} succeeded: {reason}",
            extra={"action": action, "success": True, "reason": reason},
        )
    else:
        logger.error(
            f"{action} failed: {reason}",
            extra={"action": action, "success": False, "reason": reason},
        )


def log_decode_failure(
    logger: logging.Logger,
    source: str,
    error: Exception,
) -> None:
    """Log a payload that could not be decoded"""
    logger.warning(
        f"Dropped {source} payload: {error}",
        extra={"source": source, "raw": getattr(error, "raw", None)},
    )
