"""Structured JSON logging for SalesTrack.

Provides consistent logging across all modules with:
    - JSON format for file logs
    - Human-readable console output
    - Rotating file handler
    - Context fields (user_id, prospect_id, phone_number_id, etc.)
    - Credential fields masked in both outputs

Usage:
    from salestrack.core.logging import get_logger, setup_logging

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)

    logger.info("Prospect converted", extra={"context": {"prospect_id": 123}})
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "salestrack"
LOG_FILE_NAME = "salestrack.log"

# Context keys whose values never reach a log line
REDACTED_KEYS = frozenset({"password", "new_password", "password_hash"})
REDACTED = "***"


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """Copy of context with credential values masked."""
    return {k: (REDACTED if k in REDACTED_KEYS else v) for k, v in context.items()}


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for file output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: The log record to format

        Returns:
            JSON string with timestamp, level, module, message, and context
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        # Add context if present
        if isinstance(getattr(record, "context", None), dict):
            log_data["context"] = redact_context(record.context)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimal amounts and datetimes fall back to str
        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format for console output."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S")
        level = record.levelname[:4]
        message = record.getMessage()

        # Add context summary if present
        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            ctx_parts = [f"{k}={v}" for k, v in redact_context(context).items()]
            message += f" [{', '.join(ctx_parts)}]"

        return f"{timestamp} {level:4s} {record.name}: {message}"


_logging_initialized = False
_handlers: list[logging.Handler] = []


def setup_logging(
    log_dir: Optional[Path] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Initialize logging system.

    Call once at application startup. Later calls are ignored until
    reset_logging().

    Args:
        log_dir: Directory for log files. Defaults to ~/.salestrack/logs
        console_level: Minimum level for console output (default: INFO)
        file_level: Minimum level for file output (default: DEBUG)
        max_bytes: Rotate the log file past this size
        backup_count: Rotated files to keep
    """
    global _logging_initialized

    if _logging_initialized:
        return

    # Determine log directory
    if log_dir is None:
        log_dir = Path.home() / ".salestrack" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ConsoleFormatter())

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(JSONFormatter())

    for handler in (console_handler, file_handler):
        root_logger.addHandler(handler)
        _handlers.append(handler)

    _logging_initialized = True
    root_logger.info("Logging initialized", extra={"context": {"log_dir": str(log_dir)}})


def reset_logging() -> None:
    """Detach and close the handlers added by setup_logging()."""
    global _logging_initialized

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    while _handlers:
        handler = _handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()
    _logging_initialized = False


def get_logger(name: str) -> logging.Logger:
    """Get logger for module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance under the salestrack namespace
    """
    # Avoid salestrack.salestrack.* for package modules
    prefix = f"{ROOT_LOGGER_NAME}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
