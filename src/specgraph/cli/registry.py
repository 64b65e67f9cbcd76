"""Command registry for the specgraph CLI."""

from typing import Optional

import click

from specgraph.cli.config import CLIContext
from specgraph.cli.output import emit_error
from specgraph.core.errors import SnapshotLoadError
from specgraph.core.snapshot import Snapshot

# Module-level storage for CLI context (for testing)
_cli_context: Optional[CLIContext] = None


def set_context(ctx: Optional[CLIContext]) -> None:
    global _cli_context
    _cli_context = ctx


def get_context(ctx: Optional[click.Context] = None) -> CLIContext:
    """Get CLI context from the Click context or module-level storage.

    Raises:
        RuntimeError: If no context is available.
    """
    if ctx is not None:
        return ctx.obj["cli_context"]
    if _cli_context is not None:
        return _cli_context
    raise RuntimeError("No CLI context available. Call set_context() first.")


def snapshot_or_exit(ctx: click.Context) -> Snapshot:
    """Load the snapshot, emitting an error envelope and exiting on failure."""
    try:
        return get_context(ctx).require_snapshot()
    except SnapshotLoadError as exc:
        emit_error(
            str(exc),
            code=exc.code,
            error_type="not_found" if exc.code == "SNAPSHOT_NOT_FOUND" else "validation",
            remediation="Pass --snapshot PATH pointing at a JSON file with a 'specs' list.",
            details={"path": exc.path} if exc.path else None,
        )


def register_all_commands(cli: click.Group) -> None:
    """Register all command groups with the CLI.

    Command groups are imported lazily to avoid circular imports.
    """
    from specgraph.cli.commands import graph_group, links_group, validate_group

    cli.add_command(graph_group)
    cli.add_command(validate_group)
    cli.add_command(links_group)

    @cli.command("version")
    @click.pass_context
    def version(ctx: click.Context) -> None:
        """Show CLI version information."""
        from specgraph.cli.output import emit_success

        cli_ctx = get_context(ctx)
        snapshot_path = cli_ctx.snapshot_path
        emit_success(
            {
                "name": "specgraph",
                "version": cli_ctx.config.server_version,
                "json_only": True,
                "snapshot": str(snapshot_path) if snapshot_path else None,
            }
        )
