"""
Dependency/link graph construction.

The graph is an arena of IDs: nodes are keyed by spec ID and adjacency is a
plain mapping from ID to neighbour IDs, so cycles never create object
back-references. Graphs are immutable; operations that annotate a graph
(e.g. cycle marking) return a new instance.
"""

import logging
from dataclasses import dataclass, replace
from typing import (
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from specgraph.core.errors import require
from specgraph.core.models import Link, LinkType, Spec

logger = logging.getLogger(__name__)

DEPENDENCY_EDGE_TYPES: FrozenSet[LinkType] = frozenset({LinkType.DEPENDS_ON})


@dataclass(frozen=True)
class GraphNode:
    id: str
    unresolved: bool = False
    is_circular: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "unresolved": self.unresolved,
            "isCircular": self.is_circular,
        }


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    types: FrozenSet[LinkType]
    is_circular: bool = False

    def has_any(self, edge_types: Iterable[LinkType]) -> bool:
        return not self.types.isdisjoint(edge_types)

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": self.source,
            "target": self.target,
            "types": sorted(t.value for t in self.types),
            "isCircular": self.is_circular,
        }


@dataclass(frozen=True)
class Graph:
    """Directed graph over spec IDs.

    Attributes:
        nodes: Nodes in snapshot order, then unresolved endpoints in order
            of first mention
        edges: One edge per ordered (source, target) pair, in order of
            first occurrence
    """

    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[GraphEdge, ...] = ()

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, source: str, target: str) -> Optional[GraphEdge]:
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def __contains__(self, node_id: object) -> bool:
        return any(node.id == node_id for node in self.nodes)

    def adjacency(
        self, edge_types: Optional[Iterable[LinkType]] = None
    ) -> Dict[str, List[str]]:
        """Map each node ID to the targets of its outgoing edges.

        Args:
            edge_types: Only follow edges carrying one of these types
                (default: dependency edges)
        """
        wanted = frozenset(edge_types) if edge_types is not None else DEPENDENCY_EDGE_TYPES
        adjacency: Dict[str, List[str]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            if edge.has_any(wanted):
                adjacency.setdefault(edge.source, []).append(edge.target)
        return adjacency

    def reverse_adjacency(
        self, edge_types: Optional[Iterable[LinkType]] = None
    ) -> Dict[str, List[str]]:
        """Map each node ID to the sources of its incoming edges."""
        wanted = frozenset(edge_types) if edge_types is not None else DEPENDENCY_EDGE_TYPES
        reverse: Dict[str, List[str]] = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            if edge.has_any(wanted):
                reverse.setdefault(edge.target, []).append(edge.source)
        return reverse

    def unresolved_ids(self) -> List[str]:
        return [node.id for node in self.nodes if node.unresolved]

    def summary(self) -> Dict[str, int]:
        return {
            "node_count": len(self.nodes),
            "edge_count": len(self.edges),
            "unresolved_count": sum(1 for node in self.nodes if node.unresolved),
            "circular_node_count": sum(1 for node in self.nodes if node.is_circular),
            "circular_edge_count": sum(1 for edge in self.edges if edge.is_circular),
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


def build_graph(specs: Sequence[Spec], links: Sequence[Link] = ()) -> Graph:
    """
    Build the dependency/link graph for a snapshot.

    Every spec contributes a node. Dependency entries and link endpoints
    that do not name a spec in the snapshot still get a node, flagged
    ``unresolved``, so broken references stay visible. Repeated edges
    between the same ordered pair are merged, keeping the union of types.

    Args:
        specs: Snapshot of all specs
        links: Explicit link table

    Returns:
        Immutable Graph

    Raises:
        ContractViolationError: If ``specs`` is None
    """
    require(specs, "specs")
    links = links or ()

    known: Dict[str, None] = {}
    for spec in specs:
        require(spec, "specs[]")
        known.setdefault(spec.id, None)

    node_order: Dict[str, bool] = {spec_id: False for spec_id in known}
    edge_types: Dict[Tuple[str, str], Set[LinkType]] = {}

    def _touch(node_id: str) -> None:
        if node_id not in node_order:
            node_order[node_id] = True

    def _add_edge(source: str, target: str, link_type: LinkType) -> None:
        _touch(source)
        _touch(target)
        edge_types.setdefault((source, target), set()).add(link_type)

    for spec in specs:
        for dep_id in spec.dependencies:
            _add_edge(spec.id, dep_id, LinkType.DEPENDS_ON)

    for link in links:
        _add_edge(link.source, link.target, link.type)

    graph = Graph(
        nodes=tuple(
            GraphNode(id=node_id, unresolved=unresolved)
            for node_id, unresolved in node_order.items()
        ),
        edges=tuple(
            GraphEdge(source=source, target=target, types=frozenset(types))
            for (source, target), types in edge_types.items()
        ),
    )
    logger.debug(
        "Built graph: %d nodes, %d edges, %d unresolved",
        len(graph.nodes),
        len(graph.edges),
        len(graph.unresolved_ids()),
    )
    return graph


def with_flags(
    graph: Graph,
    *,
    circular_nodes: Iterable[str] = (),
    circular_edges: Iterable[Tuple[str, str]] = (),
) -> Graph:
    """Return a copy of ``graph`` with the given nodes/edges marked circular."""
    node_set = set(circular_nodes)
    edge_set = set(circular_edges)
    return Graph(
        nodes=tuple(
            replace(node, is_circular=True) if node.id in node_set else node
            for node in graph.nodes
        ),
        edges=tuple(
            replace(edge, is_circular=True)
            if (edge.source, edge.target) in edge_set
            else edge
            for edge in graph.edges
        ),
    )


def direct_dependents(graph: Graph, node_id: str) -> List[str]:
    """IDs of the specs that list ``node_id`` as a direct dependency."""
    require(graph, "graph")
    return list(graph.reverse_adjacency().get(node_id, []))


def dependency_depth(graph: Graph, node_id: str) -> int:
    """
    Length of the longest dependency chain starting at ``node_id``.

    A resolved spec without dependencies has depth 1; unresolved nodes have
    depth 0. An edge back into the chain being walked contributes nothing,
    so the result is finite on cyclic graphs.
    """
    require(graph, "graph")
    adjacency = graph.adjacency()
    unresolved = set(graph.unresolved_ids())
    if node_id not in adjacency or node_id in unresolved:
        return 0

    depths: Dict[str, int] = {}
    on_path: Set[str] = {node_id}
    stack = [(node_id, iter(adjacency.get(node_id, [])))]
    while stack:
        current, children = stack[-1]
        pushed = False
        for child in children:
            if child in on_path or child in unresolved or child in depths:
                continue
            on_path.add(child)
            stack.append((child, iter(adjacency.get(child, []))))
            pushed = True
            break
        if pushed:
            continue
        stack.pop()
        on_path.discard(current)
        depths[current] = 1 + max(
            (depths.get(child, 0) for child in adjacency.get(current, [])),
            default=0,
        )
    return depths[node_id]
