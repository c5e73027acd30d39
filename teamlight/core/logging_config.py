"""
Centralized logging configuration for the metrics engine.

Provides:
- JSON structured logging for batch runs and log shipping
- Human-readable console logging with inline context fields
- Structured context via log_with_context()

Usage:
    from teamlight.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.warning("Skipping malformed record", extra={
        "extra_fields": {"row": 17, "reason": "missing Created At"}
    })
"""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Attributes present on every LogRecord; anything else arrived through ``extra``
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _collect_context(record: logging.LogRecord) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RESERVED_ATTRS or key == "extra_fields":
            continue
        context[key] = value
    if isinstance(getattr(record, "extra_fields", None), dict):
        context.update(record.extra_fields)
    return context


class JSONFormatter(logging.Formatter):
    """
    Format log records as one JSON object per line.

    Context passed through ``extra`` (either flat keys or the ``extra_fields``
    dict used by log_with_context) is merged into the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string"""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_collect_context(record))

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    Colours the level name when attached to a terminal and appends any
    structured context as ``key=value`` pairs.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colour coding and trailing context"""
        levelname = record.levelname
        if sys.stderr.isatty():
            color = self.COLORS.get(levelname, "")
            record.levelname = f"{color}{levelname}{self.RESET}"

        try:
            line = super().format(record)
        finally:
            record.levelname = levelname

        context = _collect_context(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {pairs}"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    json_output: bool = False,
) -> None:
    """
    Configure application-wide logging.

    Console output goes to stderr so that command-line JSON results written
    to stdout stay machine-readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output (always JSON)
        json_output: If True, use JSON formatter on the console

    Example:
        setup_logging(level="DEBUG")
        setup_logging(level="INFO", log_file=Path(".tmp/logs/teamlight.log"), json_output=True)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    if json_output:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            ContextFormatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(JSONFormatter())

        root_logger.addHandler(file_handler)

    # openpyxl warns about every unknown style in exported workbooks
    logging.getLogger("openpyxl").setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the specified module.

    Args:
        name: Module name (use __name__ in calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: Any) -> None:
    """
    Log message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level name (debug, info, warning, error, critical)
        message: Log message
        **context: Additional context fields

    Example:
        log_with_context(logger, "info", "Pipeline finished", tickets=412, alerts=6)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, extra={"extra_fields": context})


# Default configuration (can be overridden by calling setup_logging)
if not logging.getLogger().handlers:
    setup_logging(level="INFO", json_output=False)
