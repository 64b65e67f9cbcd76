"""Validation commands: check and auto-fix."""

from typing import Optional

import click

from specgraph.cli.logging import cli_command, get_cli_logger
from specgraph.cli.output import emit_spec_not_found, emit_success
from specgraph.cli.registry import get_context, snapshot_or_exit
from specgraph.core.fixes import apply_fixes
from specgraph.core.models import Severity, Spec
from specgraph.core.snapshot import Snapshot, replace_spec, save_snapshot
from specgraph.core.validation import fixable_issues, validate_snapshot, validate_spec

logger = get_cli_logger()


def _spec_or_exit(snapshot: Snapshot, spec_id: str) -> Spec:
    spec = snapshot.get_spec(spec_id)
    if spec is None:
        emit_spec_not_found(spec_id)
    return spec


@click.group("validate")
def validate_group() -> None:
    """Spec validation and fix commands."""
    pass


@validate_group.command("check")
@click.argument("spec_id", required=False)
@click.pass_context
@cli_command("validate.check")
def validate_check_cmd(ctx: click.Context, spec_id: Optional[str]) -> None:
    """Validate one spec, or the whole snapshot when SPEC_ID is omitted."""
    snapshot = snapshot_or_exit(ctx)
    config = get_context(ctx).config.validation

    if spec_id is None:
        report = validate_snapshot(snapshot.specs, config=config)
        emit_success(report.to_dict())
        return

    spec = _spec_or_exit(snapshot, spec_id)
    issues = validate_spec(spec, snapshot.specs, config=config)
    emit_success(
        {
            "spec_id": spec.id,
            "is_valid": not any(issue.severity == Severity.ERROR for issue in issues),
            "issue_count": len(issues),
            "fixable_count": len(fixable_issues(issues)),
            "issues": [issue.to_dict() for issue in issues],
        }
    )


@validate_group.command("fix")
@click.argument("spec_id")
@click.option("--write", is_flag=True, help="Write the fixed spec back to the snapshot file.")
@click.pass_context
@cli_command("validate.fix")
def validate_fix_cmd(ctx: click.Context, spec_id: str, write: bool) -> None:
    """Apply every available quick fix to SPEC_ID.

    Without --write this is a preview: the fixed spec is printed only.
    """
    cli_ctx = get_context(ctx)
    snapshot = snapshot_or_exit(ctx)
    config = cli_ctx.config.validation
    spec = _spec_or_exit(snapshot, spec_id)

    issues = fixable_issues(validate_spec(spec, snapshot.specs, config=config))
    fixed = apply_fixes(spec, issues)
    updated = replace_spec(snapshot, spec, fixed)
    remaining = validate_spec(fixed, updated.specs, config=config)

    written = False
    if write and fixed != spec:
        save_snapshot(updated, cli_ctx.snapshot_path)
        written = True
        logger.info("Applied %d fix(es) to spec %s", len(issues), spec_id)

    emit_success(
        {
            "spec_id": spec_id,
            "applied": [fix.to_dict() for issue in issues for fix in issue.fixes],
            "applied_count": sum(len(issue.fixes) for issue in issues),
            "written": written,
            "spec": fixed.to_dict(),
            "remaining_issues": [issue.to_dict() for issue in remaining],
        }
    )
