"""Centralized logging configuration for querydoc.

Every logger lives under the ``querydoc`` namespace. Records emitted while a
document run is active carry the run id, so the output of one manual page can
be told apart from another when several documents are verified in one session.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from querydoc._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "RunIDFilter",
    "StructuredFormatter",
    "bind_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "log_with_context",
    "run_id_var",
    "set_run_id",
)

run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)


def set_run_id(run_id: str | None) -> None:
    """Set the run ID for the current context.

    Args:
        run_id: The run ID to set, or None to clear
    """
    run_id_var.set(run_id)


def get_run_id() -> str | None:
    """Get the current run ID.

    Returns:
        The current run ID or None if not set
    """
    return run_id_var.get()


@contextmanager
def bind_run_id(run_id: str) -> Iterator[str]:
    """Bind ``run_id`` for the duration of the block."""
    token = run_id_var.set(run_id)
    try:
        yield run_id
    finally:
        run_id_var.reset(token)


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter with run ID support."""

    def format(self, record: LogRecord) -> str:
        """Format log record as structured JSON.

        Args:
            record: The log record to format

        Returns:
            JSON formatted log entry
        """
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if run_id := get_run_id():
            log_entry["run_id"] = run_id

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)  # pyright: ignore

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return encode_json(log_entry)


class RunIDFilter(logging.Filter):
    """Filter that adds the run ID to log records."""

    def filter(self, record: LogRecord) -> bool:
        if run_id := get_run_id():
            record.run_id = run_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance with standardized configuration.

    Args:
        name: Logger name. If not provided, returns the root querydoc logger.

    Returns:
        Configured logger instance
    """
    if name is None:
        return logging.getLogger("querydoc")

    if not name.startswith("querydoc"):
        name = f"querydoc.{name}"

    logger = logging.getLogger(name)

    if not any(isinstance(f, RunIDFilter) for f in logger.filters):
        logger.addFilter(RunIDFilter())

    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
) -> None:
    """Configure logging for the whole library.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: Log format style ("structured" for JSON, "simple" for text)
    """
    root_logger = logging.getLogger("querydoc")
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if format_style == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.propagate = False

    root_logger.info(
        "querydoc logging configured",
        extra={
            "extra_fields": {
                "level": level,
                "format_style": format_style,
                "handlers_count": len(root_logger.handlers),
            }
        },
    )


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log a message with structured extra fields.

    Args:
        logger: The logger to use
        level: Log level
        message: Log message
        **extra_fields: Additional fields to include in structured logs
    """
    if not logger.isEnabledFor(level):
        return
    record = logger.makeRecord(
        logger.name,
        level,
        "(unknown file)",
        0,
        message,
        (),
        None,
    )
    record.extra_fields = extra_fields  # type: ignore[attr-defined]
    logger.handle(record)
