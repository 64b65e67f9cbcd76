"""JSON output helpers for the specgraph CLI.

The CLI is JSON-only: success envelopes go to stdout, error envelopes to
stderr followed by exit status 1. Both use the response-v2 helpers in
``specgraph.core.responses`` so CLI and MCP output share one schema.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Mapping, NoReturn

from specgraph.cli.logging import generate_request_id
from specgraph.core.context import get_correlation_id
from specgraph.core.responses import (
    ToolResponse,
    error_response,
    spec_not_found_error,
    success_response,
)


def _request_id() -> str:
    return get_correlation_id() or generate_request_id()


def emit(data: Any) -> None:
    """Emit minified JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def _exit_with(response: ToolResponse) -> NoReturn:
    print(json.dumps(asdict(response), separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: str | None = None,
    details: Mapping[str, Any] | None = None,
) -> NoReturn:
    """Emit an error envelope to stderr and exit with code 1.

    Raises:
        SystemExit: Always exits with code 1.
    """
    _exit_with(
        error_response(
            message,
            error_code=code,
            error_type=error_type,
            remediation=remediation,
            details=details,
            request_id=_request_id(),
        )
    )


def emit_spec_not_found(spec_id: str) -> NoReturn:
    """Emit the shared SPEC_NOT_FOUND envelope and exit with code 1."""
    _exit_with(spec_not_found_error(spec_id, request_id=_request_id()))


def emit_success(data: Any) -> None:
    """Emit a success envelope to stdout; non-dict data is wrapped under ``result``."""
    payload = data if isinstance(data, dict) else {"result": data}
    emit(asdict(success_response(data=payload, request_id=_request_id())))
