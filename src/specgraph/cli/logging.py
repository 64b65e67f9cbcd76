"""Structured logging hooks for CLI commands.

Each command runs inside a request context so that engine log records and
the emitted response envelope share one correlation ID.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from specgraph.core.context import generate_correlation_id, sync_request_context

__all__ = [
    "cli_command",
    "generate_request_id",
    "get_cli_logger",
]

T = TypeVar("T")

_cli_logger = logging.getLogger("specgraph.cli")


def generate_request_id() -> str:
    """Request ID for CLI invocations (``cli_`` prefix)."""
    return generate_correlation_id(prefix="cli")


def get_cli_logger() -> logging.Logger:
    return _cli_logger


def cli_command(
    command_name: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for CLI commands.

    Runs the command inside a fresh request context and logs start,
    completion and duration at DEBUG.

    Example:
        >>> @cli_command("graph.cycles")
        ... def cycles_cmd(ctx):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = command_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with sync_request_context(
                correlation_id=generate_request_id(), operation=name
            ):
                start = time.perf_counter()
                success = True
                _cli_logger.debug("CLI command started: %s", name)
                try:
                    return func(*args, **kwargs)
                except Exception:
                    success = False
                    raise
                finally:
                    _cli_logger.debug(
                        "CLI command completed: %s",
                        name,
                        extra={
                            "command": name,
                            "success": success,
                            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                        },
                    )

        return wrapper

    return decorator
