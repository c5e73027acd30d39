"""
Error Handling Utility Module

Structured logging helpers for the two recoverable failure modes of the
engine: a single record that cannot be processed inside a batch loop, and a
loader that degrades to a default value.

Both helpers log at WARNING with the error class and caller-supplied
context so skipped records stay traceable in JSON logs.
"""

import logging
from typing import Any


def log_and_continue(
    logger: logging.Logger,
    error: Exception,
    context: dict[str, Any],
    error_type: str = "Operation",
) -> None:
    """
    Log an error with structured context and let the caller continue.

    Use this for expected per-item failures in a batch (e.g. one malformed
    ticket row) that must never abort the whole computation.

    Args:
        logger: Logger instance from get_logger(__name__)
        error: The caught exception
        context: Structured data about what failed (row number, field, value)
        error_type: Human-readable description of the operation

    Example:
        try:
            ticket = normalize_record(record, ...)
        except RecordParseError as e:
            log_and_continue(logger, e, context={"row": record.row}, error_type="Record normalization")
            continue
    """
    logger.warning(
        f"{error_type} failed: {error}",
        extra={
            "error_type": error_type,
            "exception_class": error.__class__.__name__,
            "context": context,
        },
    )


def log_and_return_default(
    logger: logging.Logger,
    error: Exception,
    context: dict[str, Any],
    default_value: Any = None,
    error_type: str = "Operation",
) -> Any:
    """
    Log an error and return a default value.

    Args:
        logger: Logger instance
        error: The caught exception
        context: Structured data about what failed
        default_value: Value to return on error (None, 0.0, [], ...)
        error_type: Human-readable description

    Returns:
        default_value
    """
    logger.warning(
        f"{error_type} failed, returning default value: {error}",
        extra={
            "error_type": error_type,
            "exception_class": error.__class__.__name__,
            "context": context,
            "default_value": str(default_value),
        },
    )
    return default_value
