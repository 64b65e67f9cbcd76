"""
Cycle detection over the dependency graph.

Only dependency-typed edges imply ordering, so by default cycles are looked
for on ``depends_on`` edges alone; ``related``/``references`` links never
make a cycle.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from specgraph.core.errors import require
from specgraph.core.graph import DEPENDENCY_EDGE_TYPES, Graph, with_flags
from specgraph.core.models import LinkType

logger = logging.getLogger(__name__)

Cycle = Tuple[str, ...]


def find_cycles(
    graph: Graph, edge_types: Optional[Iterable[LinkType]] = None
) -> List[Cycle]:
    """
    Find dependency cycles with a depth-first search.

    Roots are taken in node order and every node is visited once. When an
    edge leads back to a node still on the current DFS stack, the stack
    slice from that node onward is reported as a cycle. The first node of
    each cycle is therefore the member DFS reached first.

    Args:
        graph: Graph to inspect
        edge_types: Edge types that participate (default: depends_on)

    Returns:
        Cycles in discovery order. A self-loop is a 1-tuple.
    """
    require(graph, "graph")
    adjacency = graph.adjacency(edge_types if edge_types is not None else DEPENDENCY_EDGE_TYPES)

    cycles: List[Cycle] = []
    visited: Set[str] = set()

    for root in adjacency:
        if root in visited:
            continue

        # The recursion stack belongs to this root only.
        path: List[str] = [root]
        position: Dict[str, int] = {root: 0}
        frames: List[Tuple[str, Iterator[str]]] = [(root, iter(adjacency[root]))]
        visited.add(root)

        while frames:
            node_id, neighbours = frames[-1]
            descended = False
            for neighbour in neighbours:
                if neighbour in position:
                    cycles.append(tuple(path[position[neighbour]:]))
                    continue
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                position[neighbour] = len(path)
                path.append(neighbour)
                frames.append((neighbour, iter(adjacency.get(neighbour, []))))
                descended = True
                break
            if not descended:
                frames.pop()
                path.pop()
                del position[node_id]

    if cycles:
        logger.debug("Found %d dependency cycle(s)", len(cycles))
    return cycles


def cycle_edges(cycle: Sequence[str]) -> List[Tuple[str, str]]:
    """Consecutive (source, target) pairs of a cycle, including the closing edge."""
    return [(cycle[i], cycle[(i + 1) % len(cycle)]) for i in range(len(cycle))]


def mark_cycles(graph: Graph, cycles: Sequence[Cycle]) -> Graph:
    """Return a copy of ``graph`` with every node and edge of ``cycles`` flagged circular."""
    require(graph, "graph")
    nodes: Set[str] = set()
    edges: Set[Tuple[str, str]] = set()
    for cycle in cycles:
        nodes.update(cycle)
        edges.update(cycle_edges(cycle))
    return with_flags(graph, circular_nodes=nodes, circular_edges=edges)


def detect_and_mark(
    graph: Graph, edge_types: Optional[Iterable[LinkType]] = None
) -> Tuple[Graph, List[Cycle]]:
    """Convenience wrapper: find cycles and return the marked graph with them."""
    cycles = find_cycles(graph, edge_types)
    return mark_cycles(graph, cycles), cycles


def format_cycle(cycle: Sequence[str]) -> str:
    """Render a cycle as ``A → B → C → A``."""
    if not cycle:
        return ""
    return " → ".join(list(cycle) + [cycle[0]])


def cycles_containing(cycles: Sequence[Cycle], node_id: str) -> List[Cycle]:
    return [cycle for cycle in cycles if node_id in cycle]
