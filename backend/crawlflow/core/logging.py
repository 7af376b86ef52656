"""Structured logging configuration for the crawlflow backend.

This module configures the logging system used by the workflow services:
- JSON structured logging for files and non-debug consoles
- Colored console output while DEBUG is enabled
- Rotating file handler to keep log files bounded
- Redaction of credentials that crawl task configs tend to carry
  (cookies, auth headers, proxy passwords, API keys)
- Scoped structured context via LogContext

Loggers are obtained with get_logger(__name__) and inherit the handlers
installed by setup_logging().
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from crawlflow.core.config import settings


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from log records.

    Task configs are opaque blobs, but they routinely embed login cookies,
    authorization headers or proxy credentials for the sites being crawled.
    Any "key: value" or "key=value" pair whose key matches one of
    SENSITIVE_PATTERNS has its value replaced before a handler sees it.

    Examples:
        >>> logger = logging.getLogger("crawlflow")
        >>> logger.addFilter(SensitiveDataFilter())
        >>> logger.info("cookie=sessionid=abc123")
        # Logs: "cookie: [REDACTED]"
    """

    SENSITIVE_PATTERNS: ClassVar[list[str]] = [
        "password",
        "passwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "bearer",
        "cookie",
        "proxy_auth",
        "credential",
    ]

    _REGEXES: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        (pattern, re.compile(rf"{pattern}[:=]\s*[\"']?[^\s\"',]+", re.IGNORECASE))
        for pattern in SENSITIVE_PATTERNS
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the record message and string args in place.

        Returns:
            True; records are never dropped, only redacted.
        """
        record.msg = self._redact(str(record.msg))

        if record.args:
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True

    def _redact(self, text: str) -> str:
        for pattern, regex in self._REGEXES:
            text = regex.sub(f"{pattern}: [REDACTED]", text)
        return text


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Format:
        {
            "timestamp": "2025-01-12T10:30:45.123Z",
            "level": "INFO",
            "logger": "crawlflow.services.workflow_service",
            "message": "Workflow saved",
            "service": "Crawlflow API",
            "context": {"workflow_id": "...", "task_count": 3}
        }

    ERROR and above also carry a "source" block (function, line, file,
    process, thread); records with exc_info carry an "exception" block.
    """

    def __init__(
        self,
        service_name: str = "Crawlflow API",
        service_version: str = "0.1.0",
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.service_version,
        }

        if hasattr(record, "context"):
            log_entry["context"] = record.context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "function": record.funcName,
                "line": record.lineno,
                "file": record.pathname,
                "process": record.process,
                "thread": record.thread,
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored, human-readable console formatter for local development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"

        if hasattr(record, "context") and record.context:
            record.msg = f"{record.msg} | Context: {json.dumps(record.context, default=str)}"

        return super().format(record)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str = "Crawlflow API",
    enable_json: bool = True,
    enable_console: bool = True,
) -> logging.Logger:
    """Configure the root logger with file and console handlers.

    Args:
        log_level: Logging level name. Defaults to settings.LOG_LEVEL.
        log_file: Path to the log file. Defaults to logs/crawlflow.log.
        service_name: Service name stamped on JSON records.
        enable_json: Use JSONFormatter for the file handler.
        enable_console: Attach a stdout handler.

    Returns:
        The configured root logger.

    Examples:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Store opened", extra={"context": {"url": "sqlite://"}})
    """
    if log_level is None:
        log_level = settings.LOG_LEVEL

    log_file_path: Path
    if log_file is None:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        log_file_path = log_dir / "crawlflow.log"
    else:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on re-initialisation
    logger.handlers.clear()

    sensitive_filter = SensitiveDataFilter() if settings.LOG_SENSITIVE_FILTER else None

    file_handler = RotatingFileHandler(
        filename=str(log_file_path),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)

    if enable_json:
        file_handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        file_handler.setFormatter(
            logging.Formatter(settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )

    if sensitive_filter is not None:
        file_handler.addFilter(sensitive_filter)
    logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if settings.DEBUG:
            console_handler.setFormatter(ColoredConsoleFormatter())
        else:
            console_handler.setFormatter(JSONFormatter(service_name=service_name))

        if sensitive_filter is not None:
            console_handler.addFilter(sensitive_filter)
        logger.addHandler(console_handler)

    logger.info(
        f"Logging initialized - Level: {log_level}, File: {log_file_path}",
        extra={
            "context": {
                "log_level": log_level,
                "log_file": str(log_file_path),
                "service": service_name,
            }
        },
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Examples:
        >>> from crawlflow.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Validating workflow")
    """
    return logging.getLogger(name)


class LogContext:
    """Attach structured context to every record created inside a block.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(logger, workflow_id="wf-1", action="add_task"):
        ...     logger.info("Guard check passed")
        # Record carries context {"workflow_id": "wf-1", "action": "add_task"}
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> None:
        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            if not hasattr(record, "context"):
                record.context = self.context.copy()
            else:
                record.context = {**record.context, **self.context}
            return record

        logging.setLogRecordFactory(record_factory)

    def __exit__(self, *args: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "SensitiveDataFilter",
    "get_logger",
    "setup_logging",
]
