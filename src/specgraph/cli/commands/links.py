"""Link commands: suggestions and broken references."""

from dataclasses import replace
from typing import Optional

import click

from specgraph.cli.logging import cli_command
from specgraph.cli.output import emit_error, emit_spec_not_found, emit_success
from specgraph.cli.registry import get_context, snapshot_or_exit
from specgraph.core.references import find_all_broken_links, find_broken_links
from specgraph.core.suggestions import suggest_links


@click.group("links")
def links_group() -> None:
    """Link suggestion and broken-reference commands."""
    pass


@links_group.command("suggest")
@click.argument("spec_id")
@click.option("--limit", type=int, default=None, help="Override the suggestion limit.")
@click.pass_context
@cli_command("links.suggest")
def links_suggest_cmd(ctx: click.Context, spec_id: str, limit: Optional[int]) -> None:
    """Suggest links from SPEC_ID to related specs."""
    snapshot = snapshot_or_exit(ctx)
    spec = snapshot.get_spec(spec_id)
    if spec is None:
        emit_spec_not_found(spec_id)

    config = get_context(ctx).config.suggestions
    if limit is not None:
        if limit < 0:
            emit_error(
                "--limit must be zero or greater",
                code="VALIDATION_ERROR",
                error_type="validation",
                details={"limit": limit},
            )
        config = replace(config, limit=limit)

    suggestions = suggest_links(
        spec,
        snapshot.specs,
        snapshot.dismissed_for(spec_id),
        links=snapshot.links,
        config=config,
    )
    emit_success(
        {
            "spec_id": spec_id,
            "suggestions": [suggestion.to_dict() for suggestion in suggestions],
            "count": len(suggestions),
        }
    )


@links_group.command("broken")
@click.argument("spec_id", required=False)
@click.pass_context
@cli_command("links.broken")
def links_broken_cmd(ctx: click.Context, spec_id: Optional[str]) -> None:
    """Report spec references in content that resolve to no known spec."""
    snapshot = snapshot_or_exit(ctx)
    if spec_id is None:
        broken = find_all_broken_links(snapshot.specs)
    else:
        spec = snapshot.get_spec(spec_id)
        if spec is None:
            emit_spec_not_found(spec_id)
        broken = find_broken_links(spec, snapshot.known_ids(), snapshot.specs)
    emit_success(
        {
            "broken_links": [link.to_dict() for link in broken],
            "count": len(broken),
        }
    )
