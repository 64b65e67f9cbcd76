"""Structured logging configuration with automatic context injection.

Engine modules log through plain ``logging.getLogger(__name__)`` loggers
under the ``specgraph`` namespace. ``configure_logging`` attaches a single
stderr handler to that namespace, so stdout stays reserved for JSON output.

Usage:
    from specgraph.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="human")
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from specgraph.core.context import get_correlation_id, get_operation, get_start_time

__all__ = [
    "ContextFilter",
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
]

ROOT_LOGGER = "specgraph"


class ContextFilter(logging.Filter):
    """Adds correlation_id, operation and elapsed_ms to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.operation = get_operation() or "-"
        start_time = get_start_time()
        record.elapsed_ms = round((time.time() - start_time) * 1000, 2) if start_time > 0 else 0.0
        return True


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Example output:
        {"timestamp":"2025-01-15T10:30:45.123+00:00","level":"DEBUG",
         "logger":"specgraph.core.cycles","message":"Found 1 dependency cycle(s)",
         "correlation_id":"req_a1b2c3d4e5f6","operation":"graph.cycles",
         "elapsed_ms":3.1}
    """

    _STANDARD_ATTRS = frozenset(
        {
            "name", "msg", "args", "levelname", "levelno", "pathname",
            "filename", "module", "lineno", "funcName", "created", "msecs",
            "relativeCreated", "thread", "threadName", "processName",
            "process", "taskName", "message", "exc_info", "exc_text",
            "stack_info", "correlation_id", "operation", "elapsed_ms",
        }
    )

    def __init__(self, *, include_extra: bool = True, include_exception: bool = True):
        super().__init__()
        self.include_extra = include_extra
        self.include_exception = include_exception

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "operation": getattr(record, "operation", "-"),
            "elapsed_ms": getattr(record, "elapsed_ms", 0.0),
        }

        if self.include_exception and record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {}
            for key, value in record.__dict__.items():
                if key in self._STANDARD_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formats records as ``[LEVEL] [correlation_id] logger: message``."""

    def __init__(self, *, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        parts = []
        if self.include_timestamp:
            parts.append(datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"))
        parts.append(f"[{record.levelname}]")

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        logger_name = record.name
        if logger_name.startswith(f"{ROOT_LOGGER}."):
            logger_name = logger_name[len(ROOT_LOGGER) + 1 :]
        parts.append(f"{logger_name}:")
        parts.append(record.getMessage())

        result = " ".join(parts)
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    format: str = "structured",  # "structured" or "human"
    stream: Optional[TextIO] = None,
    add_context: bool = True,
) -> logging.Logger:
    """Configure the ``specgraph`` logger.

    Args:
        level: Log level (default: INFO)
        format: "structured" for JSON lines, anything else for human-readable
        stream: Output stream (default: stderr)
        add_context: Attach ContextFilter for correlation IDs

    Returns:
        The configured ``specgraph`` logger
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())
    if add_context:
        handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    return logger
