"""Exceptions raised by the specgraph engine and its adapters.

Data problems in a snapshot are never raised: they are reported as
validation issues. Only caller contract violations (and, in the adapters,
unreadable snapshot files) are exceptions.
"""

from typing import Any, Optional


class ContractViolationError(ValueError):
    """A required argument was missing or of the wrong shape.

    Raised when a null spec, snapshot or graph is handed to an engine
    entry point. This is a programmer error, not a data problem.
    """

    def __init__(self, argument: str, message: Optional[str] = None):
        self.argument = argument
        super().__init__(message or f"'{argument}' is required and must not be None")


class SnapshotLoadError(Exception):
    """A snapshot file could not be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        details: Any = None,
        code: str = "INVALID_FORMAT",
    ):
        self.path = path
        self.code = code
        self.details = details
        super().__init__(message)


def require(value: Any, argument: str) -> Any:
    """Return ``value`` unchanged, raising if it is None."""
    if value is None:
        raise ContractViolationError(argument)
    return value
