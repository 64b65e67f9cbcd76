"""
Upstream/downstream closures used for chain highlighting.

Both closures are reflexive, so the chain through a node is simply
``upstream(n) | downstream(n)``. Inside a cycle every member is both an
ancestor and a descendant of every other member.
"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from specgraph.core.errors import require
from specgraph.core.graph import DEPENDENCY_EDGE_TYPES, Graph
from specgraph.core.models import LinkType


def _closure(adjacency: Dict[str, List[str]], start: str) -> Set[str]:
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for neighbour in adjacency.get(current, ()):
            if neighbour not in seen:
                seen.add(neighbour)
                queue.append(neighbour)
    return seen


def upstream(
    graph: Graph, node_id: str, edge_types: Optional[Iterable[LinkType]] = None
) -> Set[str]:
    """Everything ``node_id`` transitively depends on, plus ``node_id`` itself."""
    require(graph, "graph")
    require(node_id, "node_id")
    return _closure(graph.adjacency(edge_types or DEPENDENCY_EDGE_TYPES), node_id)


def downstream(
    graph: Graph, node_id: str, edge_types: Optional[Iterable[LinkType]] = None
) -> Set[str]:
    """Everything that transitively depends on ``node_id``, plus ``node_id`` itself."""
    require(graph, "graph")
    require(node_id, "node_id")
    return _closure(graph.reverse_adjacency(edge_types or DEPENDENCY_EDGE_TYPES), node_id)


def highlight_chain(
    graph: Graph, node_id: str, edge_types: Optional[Iterable[LinkType]] = None
) -> Set[str]:
    return upstream(graph, node_id, edge_types) | downstream(graph, node_id, edge_types)
