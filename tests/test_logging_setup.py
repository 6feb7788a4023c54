"""
Structured logging tests.
"""

import json
import logging
from unittest.mock import MagicMock

from wristlink.common.logging_setup import (
    JsonFormatter,
    configure_all,
    get_service_logger,
    log_decode_failure,
    log_outcome,
    log_state_change,
    setup_logging,
)
from wristlink.common.exceptions import DecodeError


def _record(**extra):
    record = logging.LogRecord(
        name="wristlink.session",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Session %s",
        args=("active",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:

    def test_core_fields(self):
        data = json.loads(JsonFormatter().format(_record(service="session")))

        assert data["level"] == "INFO"
        assert data["service"] == "session"
        assert data["message"] == "Session active"
        assert data["logger"] == "wristlink.session"

    def test_extra_fields_included(self):
        data = json.loads(JsonFormatter().format(_record(action="triggerSOS", raw=object())))

        assert data["action"] == "triggerSOS"
        assert data["raw"].startswith("<object")

    def test_missing_service(self):
        assert json.loads(JsonFormatter().format(_record()))["service"] == "unknown"


class TestSetup:

    def test_logger_does_not_propagate(self):
        logger = setup_logging("test.setup", "WARNING")

        assert logger.name == "wristlink.test.setup"
        assert logger.propagate is False
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_repeated_setup_keeps_one_handler(self):
        setup_logging("test.repeat")
        logger = setup_logging("test.repeat", json_format=False)

        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("WRISTLINK_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("WRISTLINK_LOG_FORMAT", "text")

        adapter = get_service_logger("test.env")

        assert adapter.logger.level == logging.ERROR
        assert not isinstance(adapter.logger.handlers[0].formatter, JsonFormatter)
        assert adapter.extra == {"service": "test.env"}

    def test_configure_all(self):
        get_service_logger("test.configure")

        configure_all("CRITICAL", json_format=True)

        logger = logging.getLogger("wristlink.test.configure")
        assert logger.level == logging.CRITICAL
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

        configure_all("INFO", json_format=True)

    def test_adapter_adds_service(self):
        adapter = get_service_logger("test.adapter")
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        adapter.logger.addHandler(handler)

        adapter.info("hello", extra={"action": "triggerSOS"})

        assert records[0].service == "test.adapter"
        assert records[0].action == "triggerSOS"


class TestEventHelpers:

    def test_state_change(self):
        logger = MagicMock()
        log_state_change(logger, "activating", "failed", reason="not paired")

        message = logger.info.call_args.args[0]
        assert message == "Session activating -> failed (not paired)"
        assert logger.info.call_args.kwargs["extra"]["new_state"] == "failed"

    def test_outcome_levels(self):
        logger = MagicMock()
        log_outcome(logger, "triggerSOS", True, "sos_triggered")
        log_outcome(logger, "triggerSOS", False, "host not reachable")

        logger.info.assert_called_once()
        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["extra"]["success"] is False

    def test_decode_failure_is_warning(self):
        logger = MagicMock()
        log_decode_failure(logger, "push", DecodeError("missing isSystemEnabled", raw={"x": 1}))

        logger.warning.assert_called_once()
        assert logger.warning.call_args.kwargs["extra"]["raw"] == {"x": 1}
