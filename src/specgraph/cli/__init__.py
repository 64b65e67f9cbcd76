"""specgraph CLI - JSON-only command-line interface to the engine."""

from specgraph.cli.config import CLIContext, create_context
from specgraph.cli.logging import cli_command, get_cli_logger
from specgraph.cli.main import cli
from specgraph.cli.output import emit, emit_error, emit_spec_not_found, emit_success
from specgraph.cli.registry import get_context, set_context

__all__ = [
    "cli",
    "CLIContext",
    "create_context",
    "get_context",
    "set_context",
    "emit",
    "emit_error",
    "emit_spec_not_found",
    "emit_success",
    "cli_command",
    "get_cli_logger",
]
