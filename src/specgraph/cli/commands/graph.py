"""Graph commands: build, cycles and dependency chains."""

import click

from specgraph.cli.logging import cli_command
from specgraph.cli.output import emit_spec_not_found, emit_success
from specgraph.cli.registry import get_context, snapshot_or_exit
from specgraph.core.cycles import detect_and_mark, format_cycle
from specgraph.core.graph import build_graph, dependency_depth, direct_dependents
from specgraph.core.models import id_sort_key
from specgraph.core.reachability import downstream, upstream


def _sorted_ids(ids):
    return sorted(ids, key=id_sort_key)


@click.group("graph")
def graph_group() -> None:
    """Dependency graph commands."""
    pass


@graph_group.command("build")
@click.pass_context
@cli_command("graph.build")
def graph_build_cmd(ctx: click.Context) -> None:
    """Build the graph with circular nodes and edges flagged."""
    snapshot = snapshot_or_exit(ctx)
    edge_types = get_context(ctx).config.graph.cycle_edge_types
    graph, cycles = detect_and_mark(build_graph(snapshot.specs, snapshot.links), edge_types)
    emit_success(
        {
            **graph.to_dict(),
            "summary": graph.summary(),
            "cycle_count": len(cycles),
        }
    )


@graph_group.command("cycles")
@click.pass_context
@cli_command("graph.cycles")
def graph_cycles_cmd(ctx: click.Context) -> None:
    """List dependency cycles."""
    snapshot = snapshot_or_exit(ctx)
    edge_types = get_context(ctx).config.graph.cycle_edge_types
    _, cycles = detect_and_mark(build_graph(snapshot.specs, snapshot.links), edge_types)
    emit_success(
        {
            "cycles": [{"nodes": list(cycle), "path": format_cycle(cycle)} for cycle in cycles],
            "count": len(cycles),
        }
    )


@graph_group.command("chain")
@click.argument("node_id")
@click.pass_context
@cli_command("graph.chain")
def graph_chain_cmd(ctx: click.Context, node_id: str) -> None:
    """Show everything NODE_ID depends on and everything depending on it."""
    snapshot = snapshot_or_exit(ctx)
    graph = build_graph(snapshot.specs, snapshot.links)
    if node_id not in graph:
        emit_spec_not_found(node_id)

    edge_types = get_context(ctx).config.graph.cycle_edge_types
    ancestors = upstream(graph, node_id, edge_types)
    descendants = downstream(graph, node_id, edge_types)
    emit_success(
        {
            "node_id": node_id,
            "upstream": _sorted_ids(ancestors),
            "downstream": _sorted_ids(descendants),
            "chain": _sorted_ids(ancestors | descendants),
            "dependents": direct_dependents(graph, node_id),
            "depth": dependency_depth(graph, node_id),
        }
    )
