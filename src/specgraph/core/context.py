"""Request context for log correlation.

A CLI invocation or MCP tool call runs inside ``sync_request_context``; every
log record emitted meanwhile carries its correlation ID and the name of the
operation being performed (see ``specgraph.core.logging_config``).

Usage:
    from specgraph.core.context import sync_request_context, get_correlation_id

    with sync_request_context(operation="validate") as ctx:
        print(ctx.correlation_id)  # e.g., "req_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Generator, Optional

__all__ = [
    "correlation_id_var",
    "operation_var",
    "start_time_var",
    "RequestContext",
    "generate_correlation_id",
    "sync_request_context",
    "get_correlation_id",
    "get_operation",
    "get_start_time",
]

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
operation_var: ContextVar[str] = ContextVar("operation", default="")
start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID.

    Format: {prefix}_{12_hex_chars}
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass(frozen=True)
class RequestContext:
    """Snapshot of the active request context."""

    correlation_id: str
    operation: str
    start_time: float


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    operation: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Set the request context for the duration of the with block.

    Args:
        correlation_id: Request ID (auto-generated if None)
        operation: Name of the command or tool action being run
    """
    corr_id = correlation_id or generate_correlation_id()
    op = operation or ""
    start = time.time()

    token_corr = correlation_id_var.set(corr_id)
    token_op = operation_var.set(op)
    token_start = start_time_var.set(start)
    try:
        yield RequestContext(correlation_id=corr_id, operation=op, start_time=start)
    finally:
        correlation_id_var.reset(token_corr)
        operation_var.reset(token_op)
        start_time_var.reset(token_start)


def get_correlation_id() -> str:
    """Current correlation ID, or "" outside a request context."""
    return correlation_id_var.get()


def get_operation() -> str:
    return operation_var.get()


def get_start_time() -> float:
    return start_time_var.get()
