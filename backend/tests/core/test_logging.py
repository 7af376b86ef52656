"""Tests for the logging module.

This module tests the logging system including:
- Structured JSON logging
- Credential redaction in task configs
- Scoped context via LogContext
- Handler setup
"""

import json
import logging
import sys
from pathlib import Path

import pytest

from crawlflow.core.logging import (
    ColoredConsoleFormatter,
    JSONFormatter,
    LogContext,
    SensitiveDataFilter,
    get_logger,
    setup_logging,
)


def _record(msg: str, level: int = logging.INFO, args: tuple = ()) -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger():
    """Put back the root logger's handlers and level after setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSensitiveDataFilter:
    """Test credential redaction."""

    def test_filter_cookie_in_config(self) -> None:
        """Test that a login cookie in a task config is redacted."""
        record = _record('Task config: {"cookie": "x", cookie=sessionid=abc123}')

        assert SensitiveDataFilter().filter(record) is True
        assert "abc123" not in record.msg
        assert "cookie: [REDACTED]" in record.msg

    def test_filter_multiple_sensitive_patterns(self) -> None:
        """Test that every sensitive pair is redacted."""
        record = _record("password: pass123, token: abc123, api_key=xyz789")

        SensitiveDataFilter().filter(record)

        assert record.msg.count("[REDACTED]") == 3
        for value in ("pass123", "abc123", "xyz789"):
            assert value not in record.msg

    def test_filter_string_args(self) -> None:
        """Test that %-style string arguments are redacted too."""
        record = _record("Proxy %s on port %d", args=("proxy_auth=user:pw", 8080))

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "Proxy proxy_auth: [REDACTED] on port 8080"

    def test_plain_message_untouched(self) -> None:
        """Test that messages without credentials pass unchanged."""
        record = _record("Workflow saved")

        SensitiveDataFilter().filter(record)

        assert record.msg == "Workflow saved"


class TestJSONFormatter:
    """Test JSON log formatting."""

    def test_json_formatter_creates_valid_json(self) -> None:
        """Test that JSON formatter creates valid JSON output."""
        formatter = JSONFormatter(service_name="TestAPI")

        log_entry = json.loads(formatter.format(_record("Test message")))

        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "test.logger"
        assert log_entry["message"] == "Test message"
        assert log_entry["service"] == "TestAPI"
        assert log_entry["timestamp"].endswith("Z")
        assert "source" not in log_entry

    def test_json_formatter_includes_context(self) -> None:
        """Test that JSON formatter includes context."""
        record = _record("Workflow saved")
        record.context = {"workflow_id": "wf-1", "tasks": 3}

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["context"] == {"workflow_id": "wf-1", "tasks": 3}

    def test_error_records_carry_source(self) -> None:
        """Test that ERROR records include their source location."""
        log_entry = json.loads(JSONFormatter().format(_record("boom", logging.ERROR)))

        assert log_entry["source"]["line"] == 42
        assert log_entry["source"]["file"] == "test.py"

    def test_exception_block(self) -> None:
        """Test that exc_info is serialized."""
        try:
            raise ValueError("bad trigger")
        except ValueError:
            record = logging.LogRecord(
                "test", logging.ERROR, "test.py", 1, "failed", (), exc_info=sys.exc_info()
            )

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["exception"]["type"] == "ValueError"
        assert log_entry["exception"]["message"] == "bad trigger"


class TestColoredConsoleFormatter:
    """Test console formatting."""

    def test_context_appended(self) -> None:
        """Test that context is rendered after the message."""
        record = _record("Workflow saved")
        record.context = {"tasks": 3}

        output = ColoredConsoleFormatter().format(record)

        assert 'Workflow saved | Context: {"tasks": 3}' in output
        assert "\033[32m" in output


class TestLogContext:
    """Test LogContext context manager."""

    def test_log_context_adds_context_to_records(self) -> None:
        """Test that LogContext adds context to records created inside it."""
        logger = logging.getLogger("test_context")
        logger.handlers.clear()
        logger.propagate = False
        handler = logging.StreamHandler()
        records = []

        def emit_record(record: logging.LogRecord) -> None:
            records.append(record)

        handler.emit = emit_record  # type: ignore[method-assign]
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

        with LogContext(logger, workflow_id="wf-1", action="add_task"):
            logger.info("Guard check passed")
        logger.info("Outside")

        assert records[0].context == {"workflow_id": "wf-1", "action": "add_task"}
        assert not hasattr(records[1], "context")


class TestSetupLogging:
    """Test logging setup function."""

    def test_setup_logging_creates_log_directory(
        self, tmp_path: Path, restore_root_logger
    ) -> None:
        """Test that setup_logging creates the log directory."""
        log_file = tmp_path / "logs" / "test.log"

        setup_logging(log_file=str(log_file), enable_console=False)

        assert log_file.parent.exists()

    def test_setup_logging_configures_log_level(
        self, tmp_path: Path, restore_root_logger
    ) -> None:
        """Test that setup_logging configures the level."""
        logger = setup_logging(
            log_level="DEBUG", log_file=str(tmp_path / "test.log"), enable_console=False
        )

        assert logger.level == logging.DEBUG

    def test_setup_logging_writes_json(self, tmp_path: Path, restore_root_logger) -> None:
        """Test that records reach the file as redacted JSON lines."""
        log_file = tmp_path / "test.log"
        setup_logging(log_file=str(log_file), enable_console=False, service_name="TestAPI")

        get_logger("crawlflow.test").warning(
            "Config token=abc123", extra={"context": {"workflow_id": "wf-1"}}
        )
        for handler in logging.getLogger().handlers:
            handler.flush()

        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        last = entries[-1]
        assert last["message"] == "Config token: [REDACTED]"
        assert last["context"] == {"workflow_id": "wf-1"}
        assert last["service"] == "TestAPI"

    def test_setup_logging_replaces_handlers(self, tmp_path: Path, restore_root_logger) -> None:
        """Test that calling setup twice does not duplicate handlers."""
        setup_logging(log_file=str(tmp_path / "a.log"))
        logger = setup_logging(log_file=str(tmp_path / "b.log"))

        assert len(logger.handlers) == 2
