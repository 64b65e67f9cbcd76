"""specgraph CLI entry point.

JSON-only output for editors, scripts and AI coding assistants.
"""

import click

from specgraph.cli.config import create_context
from specgraph.cli.registry import register_all_commands


@click.group()
@click.option(
    "--snapshot",
    "snapshot_path",
    type=click.Path(exists=False, dir_okay=False),
    help="Snapshot JSON file (default: $SPECGRAPH_SNAPSHOT or ./specgraph.json)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=False, dir_okay=False),
    help="TOML config file (default: $SPECGRAPH_CONFIG_FILE or ./specgraph.toml)",
)
@click.pass_context
def cli(ctx: click.Context, snapshot_path: str | None, config_file: str | None) -> None:
    """specgraph - spec relationship graph and validation engine.

    All commands output JSON envelopes for reliable parsing.
    """
    ctx.ensure_object(dict)
    cli_ctx = create_context(snapshot_path=snapshot_path, config_file=config_file)
    cli_ctx.config.setup_logging()
    ctx.obj["cli_context"] = cli_ctx


register_all_commands(cli)


if __name__ == "__main__":
    cli()
