"""
Unit tests for specgraph.core.suggestions.
"""

import pytest

from specgraph.config import SuggestionConfig
from specgraph.core.errors import ContractViolationError
from specgraph.core.models import Link, LinkType
from specgraph.core.suggestions import (
    connected_ids,
    infer_link_type,
    significant_tokens,
    suggest_links,
)


@pytest.fixture
def graph_view(spec_factory):
    source = spec_factory(
        "1",
        title="Graph view",
        tags={"ui"},
        content="This view implements Spec 2 rendering.\nAlso see spec:3.",
    )
    others = [
        spec_factory("2", title="Layout engine"),
        spec_factory("3", title="Graph view filters", tags={"ui"}),
        spec_factory("4", title="Unrelated billing"),
    ]
    return source, [source] + others


class TestSuggestLinks:
    def test_scores_and_order(self, graph_view):
        source, snapshot = graph_view
        suggestions = suggest_links(source, snapshot)
        assert [(s.target_spec_id, s.confidence) for s in suggestions] == [
            ("3", 1.0),
            ("2", 0.5),
        ]
        assert suggestions[0].signals == ("mention", "title", "tags")
        assert suggestions[1].signals == ("mention",)

    def test_type_and_context_come_from_mention_line(self, graph_view):
        source, snapshot = graph_view
        by_target = {s.target_spec_id: s for s in suggest_links(source, snapshot)}
        assert by_target["2"].type == LinkType.IMPLEMENTS
        assert by_target["2"].context == "This view implements Spec 2 rendering."
        assert by_target["3"].type == LinkType.REFERENCES
        assert "Referenced as 'spec:3' on line 2" in by_target["3"].reason

    def test_never_suggests_self(self, spec_factory):
        spec = spec_factory("1", title="Graph view", content="Spec 1 is this one")
        assert suggest_links(spec, [spec]) == []

    def test_confidence_capped(self, graph_view):
        source, snapshot = graph_view
        config = SuggestionConfig(mention_weight=0.9, title_weight=0.9, tag_weight=0.9)
        suggestions = suggest_links(source, snapshot, config=config)
        assert all(0.0 < s.confidence <= 1.0 for s in suggestions)
        assert suggestions[0].confidence == 1.0

    def test_limit(self, graph_view):
        source, snapshot = graph_view
        suggestions = suggest_links(source, snapshot, config=SuggestionConfig(limit=1))
        assert [s.target_spec_id for s in suggestions] == ["3"]
        assert suggest_links(source, snapshot, config=SuggestionConfig(limit=0)) == []

    def test_min_confidence_is_exclusive(self, graph_view):
        source, snapshot = graph_view
        config = SuggestionConfig(min_confidence=0.5)
        assert [s.target_spec_id for s in suggest_links(source, snapshot, config=config)] == ["3"]

    def test_dismissed_targets_excluded(self, graph_view):
        source, snapshot = graph_view
        suggestions = suggest_links(source, snapshot, frozenset({"3"}))
        assert [s.target_spec_id for s in suggestions] == ["2"]

    def test_existing_dependency_excluded(self, graph_view, spec_factory):
        _, snapshot = graph_view
        source = spec_factory(
            "1", ["2"], title="Graph view", tags={"ui"},
            content="This view implements Spec 2 rendering.\nAlso see spec:3.",
        )
        assert "2" not in [s.target_spec_id for s in suggest_links(source, snapshot)]

    def test_reverse_dependency_and_links_excluded(self, graph_view, spec_factory):
        source, snapshot = graph_view
        snapshot = [source, spec_factory("2", ["1"], title="Layout engine")] + snapshot[2:]
        links = [Link(source="3", target="1", type=LinkType.RELATED)]
        assert suggest_links(source, snapshot, links=links) == []

    def test_mentions_compare_numerically(self, spec_factory):
        source = spec_factory("1", title="Alpha", content="Builds on SPEC-002.")
        target = spec_factory("2", title="Beta")
        suggestions = suggest_links(source, [source, target])
        assert [s.target_spec_id for s in suggestions] == ["2"]

    def test_title_found_in_content(self, spec_factory):
        source = spec_factory("1", title="Alpha", content="We reuse the layout engine here.")
        target = spec_factory("2", title="Layout engine")
        suggestion = suggest_links(source, [source, target])[0]
        assert suggestion.signals == ("title",)
        assert suggestion.type == LinkType.RELATED
        assert suggestion.context == ""

    def test_stopword_title_never_matches(self, spec_factory):
        source = spec_factory("1", title="Alpha", content="a spec of the thing")
        target = spec_factory("2", title="The spec")
        assert suggest_links(source, [source, target]) == []

    def test_ties_broken_by_numeric_id(self, spec_factory):
        source = spec_factory("1", title="Alpha", tags={"core"}, content="")
        specs = [
            source,
            spec_factory("10", title="Gamma", tags={"core"}),
            spec_factory("9", title="Delta", tags={"core"}),
        ]
        suggestions = suggest_links(source, specs)
        assert [s.target_spec_id for s in suggestions] == ["9", "10"]
        assert suggestions[0].reason == "Shared tags: core"

    def test_none_arguments_raise(self, spec_factory):
        with pytest.raises(ContractViolationError):
            suggest_links(None, [])
        with pytest.raises(ContractViolationError):
            suggest_links(spec_factory("1"), None)


class TestHelpers:
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("This implements spec:3", LinkType.IMPLEMENTS),
            ("It extends Spec 3", LinkType.EXTENDS),
            ("Depends on Spec 3", LinkType.DEPENDS_ON),
            ("Requires spec:3", LinkType.DEPENDS_ON),
            ("Blocked by spec:3", LinkType.DEPENDS_ON),
            ("See Spec 3", LinkType.REFERENCES),
            (None, LinkType.RELATED),
        ],
    )
    def test_infer_link_type(self, line, expected):
        assert infer_link_type(line) == expected

    def test_significant_tokens(self):
        assert significant_tokens("The Graph View of a spec, v2") == {"graph", "view"}

    def test_connected_ids(self, chain_specs):
        links = [Link(source="9", target="2")]
        assert connected_ids(chain_specs[1], chain_specs, links) == {"1", "3", "9"}
