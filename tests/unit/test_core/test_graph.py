"""
Unit tests for specgraph.core.graph.
"""

import pytest

from specgraph.core.errors import ContractViolationError
from specgraph.core.graph import (
    build_graph,
    dependency_depth,
    direct_dependents,
    with_flags,
)
from specgraph.core.models import Link, LinkType


class TestBuildGraph:
    def test_nodes_in_snapshot_order(self, chain_specs):
        graph = build_graph(chain_specs)
        assert graph.node_ids() == ["1", "2", "3"]
        assert graph.unresolved_ids() == []

    def test_every_spec_becomes_a_node(self, spec_factory):
        specs = [spec_factory("5"), spec_factory("1"), spec_factory("9", ["5"])]
        graph = build_graph(specs)
        assert {s.id for s in specs} <= set(graph.node_ids())

    def test_missing_dependency_becomes_unresolved_node(self, spec_factory):
        graph = build_graph([spec_factory("10", ["999"])])
        assert graph.node_ids() == ["10", "999"]
        assert graph.get_node("999").unresolved is True
        assert graph.get_node("10").unresolved is False

    def test_edges_in_first_occurrence_order(self, chain_specs):
        graph = build_graph(chain_specs)
        assert [(e.source, e.target) for e in graph.edges] == [
            ("2", "1"),
            ("3", "1"),
            ("3", "2"),
        ]

    def test_duplicate_edges_merge_types(self, spec_factory):
        specs = [spec_factory("1"), spec_factory("2", ["1", "1"])]
        links = [
            Link(source="2", target="1", type=LinkType.RELATED),
            Link(source="2", target="1", type=LinkType.DEPENDS_ON),
        ]
        graph = build_graph(specs, links)
        assert len(graph.edges) == 1
        assert graph.get_edge("2", "1").types == frozenset(
            {LinkType.DEPENDS_ON, LinkType.RELATED}
        )

    def test_link_endpoints_outside_snapshot_are_unresolved(self, spec_factory):
        graph = build_graph([spec_factory("1")], [Link(source="1", target="77")])
        assert graph.get_node("77").unresolved is True

    def test_none_snapshot_raises(self):
        with pytest.raises(ContractViolationError):
            build_graph(None)

    def test_empty_snapshot(self):
        graph = build_graph([])
        assert graph.nodes == ()
        assert graph.edges == ()


class TestAdjacency:
    def test_default_follows_dependency_edges_only(self, chain_specs, related_links):
        graph = build_graph(chain_specs, related_links)
        adjacency = graph.adjacency()
        assert adjacency["1"] == []
        assert adjacency["3"] == ["1", "2"]

    def test_explicit_edge_types(self, chain_specs, related_links):
        graph = build_graph(chain_specs, related_links)
        assert graph.adjacency([LinkType.RELATED])["1"] == ["3"]

    def test_reverse_adjacency(self, chain_specs):
        reverse = build_graph(chain_specs).reverse_adjacency()
        assert reverse["1"] == ["2", "3"]
        assert reverse["3"] == []


class TestGraphQueries:
    def test_direct_dependents(self, chain_specs):
        graph = build_graph(chain_specs)
        assert direct_dependents(graph, "1") == ["2", "3"]
        assert direct_dependents(graph, "3") == []

    @pytest.mark.parametrize("node_id,expected", [("1", 1), ("2", 2), ("3", 3)])
    def test_dependency_depth(self, chain_specs, node_id, expected):
        assert dependency_depth(build_graph(chain_specs), node_id) == expected

    def test_dependency_depth_unresolved_and_unknown(self, spec_factory):
        graph = build_graph([spec_factory("10", ["999"])])
        assert dependency_depth(graph, "999") == 0
        assert dependency_depth(graph, "10") == 1
        assert dependency_depth(graph, "nope") == 0

    def test_dependency_depth_terminates_on_cycles(self, cyclic_specs):
        graph = build_graph(cyclic_specs)
        assert dependency_depth(graph, "1") == 3

    def test_summary_and_flags(self, cyclic_specs):
        graph = with_flags(
            build_graph(cyclic_specs),
            circular_nodes={"1", "2"},
            circular_edges={("1", "2")},
        )
        assert graph.summary() == {
            "node_count": 3,
            "edge_count": 3,
            "unresolved_count": 0,
            "circular_node_count": 2,
            "circular_edge_count": 1,
        }

    def test_to_dict(self, spec_factory):
        data = build_graph([spec_factory("1"), spec_factory("2", ["1"])]).to_dict()
        assert data["nodes"][0] == {"id": "1", "unresolved": False, "isCircular": False}
        assert data["edges"] == [
            {"source": "2", "target": "1", "types": ["depends_on"], "isCircular": False}
        ]
