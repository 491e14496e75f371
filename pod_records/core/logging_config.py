"""
Structured logging configuration for the record store.

This module provides:
- JSON-formatted log output (one object per line)
- Operation ID propagation via contextvars
- A human-readable text format for local use

Every public record store operation runs inside ``operation_context``, so all
log lines emitted while listing a directory or importing a CSV carry the same
``operation_id`` and can be grouped afterwards.

Log Structure (JSON):
{
    "timestamp": "2025-01-15T10:30:00.123Z",
    "level": "INFO",
    "logger": "pod_records.services.record_store",
    "message": "Saved record",
    "operation_id": "save_record-3f2a9c1e",
    "extra": { ... }
}

Usage:
    from pod_records.core.logging_config import setup_logging

    setup_logging()
    logger.info("Listing feature", extra={"feature": "vaccination"})
"""

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

# =============================================================================
# OPERATION ID CONTEXT
# =============================================================================

operation_id_var: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


def get_operation_id() -> Optional[str]:
    """Get the current operation ID from context (coroutine-safe)."""
    return operation_id_var.get()


@contextmanager
def operation_context(name: str) -> Iterator[str]:
    """
    Tag log lines emitted inside the block with a fresh operation ID.

    Nested operations (an import calling save_record) keep the outer ID.
    """
    current = operation_id_var.get()
    if current is not None:
        yield current
        return

    operation_id = f"{name}-{uuid.uuid4().hex[:8]}"
    token = operation_id_var.set(operation_id)
    try:
        yield operation_id
    finally:
        operation_id_var.reset(token)


# =============================================================================
# JSON FORMATTER
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    Single-line JSON log formatter.

    All timestamps are UTC.
    """

    STANDARD_ATTRS = {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "taskName", "message",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        operation_id = get_operation_id()
        if operation_id:
            log_entry["operation_id"] = operation_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self.STANDARD_ATTRS and not key.startswith("_")
        }
        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class OperationTextFormatter(logging.Formatter):
    """Text formatter that appends the operation ID when one is active."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        operation_id = get_operation_id()
        if operation_id:
            line = f"{line} [{operation_id}]"
        return line


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, use JSON format; if False, use human-readable format

    Environment Variables:
        LOG_LEVEL: Override the log level
        LOG_FORMAT: Override format ("json" or "text")
    """
    level = os.environ.get("LOG_LEVEL", level).upper()
    json_format = os.environ.get("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(OperationTextFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(logging.WARNING, root_logger.level))

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"}
    )
