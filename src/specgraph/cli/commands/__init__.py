"""CLI command groups."""

from specgraph.cli.commands.graph import graph_group
from specgraph.cli.commands.links import links_group
from specgraph.cli.commands.validate import validate_group

__all__ = ["graph_group", "links_group", "validate_group"]
