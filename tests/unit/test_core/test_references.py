"""
Unit tests for specgraph.core.references.
"""

import pytest

from specgraph.core.errors import ContractViolationError
from specgraph.core.references import (
    find_all_broken_links,
    find_broken_links,
    find_references,
)


class TestFindReferences:
    @pytest.mark.parametrize(
        "line,target,fmt",
        [
            ("See [Spec 12](../specs/012-graph-view.md).", "012", "markdown-link"),
            ("See [the graph](spec:12).", "12", "markdown-link"),
            ("See [Spec 12](#top).", "12", "markdown-link"),
            ("Builds on spec:12 for layout.", "12", "prefixed"),
            ("Builds on SPEC-012 for layout.", "012", "prefixed"),
            ("Ask @spec 7 about it.", "7", "at-spec"),
            ("See Spec 12 for details.", "12", "plain"),
            ("See spec #12 for details.", "12", "plain"),
        ],
    )
    def test_formats(self, line, target, fmt):
        refs = find_references(line)
        assert len(refs) == 1
        assert refs[0].target == target
        assert refs[0].format == fmt

    def test_prefixed_reference_keeps_section(self):
        refs = find_references("Follow spec:12#Objective closely")
        assert refs[0].section == "Objective"
        assert refs[0].format == "prefixed-section"

    @pytest.mark.parametrize("text", ["spec:12#AC-3", "SPEC-012#ac:3"])
    def test_criterion_reference(self, text):
        refs = find_references(f"Covers {text}.")
        assert len(refs) == 1
        assert refs[0].criterion == 3
        assert refs[0].section is None
        assert refs[0].format == "prefixed-criterion"

    def test_markdown_link_claims_its_label(self):
        refs = find_references("[Spec 3](spec:3) and Spec 4")
        assert [(r.target, r.format) for r in refs] == [
            ("3", "markdown-link"),
            ("4", "plain"),
        ]

    def test_line_numbers_are_one_based(self):
        refs = find_references("intro\n\nsee spec:5")
        assert refs[0].line_number == 3
        assert refs[0].column == 4

    def test_plain_prose_has_no_references(self):
        assert find_references("This specification describes the graph.") == []
        assert find_references("") == []

    def test_non_spec_markdown_link_ignored(self):
        assert find_references("[docs](https://example.com/guide)") == []


class TestBrokenLinks:
    def test_unknown_target_is_broken(self, spec_factory):
        spec = spec_factory("3", content="See Spec 999 for details")
        broken = find_broken_links(spec, {"1", "2"})
        assert len(broken) == 1
        assert broken[0].target_reference == "999"
        assert broken[0].line_number == 1
        assert broken[0].spec_id == "3"
        assert broken[0].link_text == "Spec 999"

    def test_known_targets_are_not_broken(self, spec_factory):
        spec = spec_factory("3", content="Uses Spec 1 and spec:2")
        assert find_broken_links(spec, {"1", "2"}) == []

    def test_ids_compare_numerically(self, spec_factory):
        spec = spec_factory("3", content="Uses SPEC-012")
        assert find_broken_links(spec, {"12"}) == []
        assert find_broken_links(spec_factory("3", content="Uses spec:12"), {"012"}) == []

    def test_references_need_not_be_dependencies(self, spec_factory):
        spec = spec_factory("3", content="Compare with Spec 1")
        assert spec.dependencies == ()
        assert find_broken_links(spec, {"1", "3"}) == []

    def test_snapshot_wide(self, spec_factory):
        specs = [
            spec_factory("1", content="See Spec 2"),
            spec_factory("2", content="See Spec 8\nand Spec 9"),
        ]
        broken = find_all_broken_links(specs)
        assert [(b.spec_id, b.target_reference, b.line_number) for b in broken] == [
            ("2", "8", 1),
            ("2", "9", 2),
        ]

    def test_none_arguments_raise(self, spec_factory):
        with pytest.raises(ContractViolationError):
            find_broken_links(None, set())
        with pytest.raises(ContractViolationError):
            find_broken_links(spec_factory("1"), None)

    def test_to_dict(self, spec_factory):
        broken = find_broken_links(spec_factory("3", content="spec:44"), {"3"})
        assert broken[0].to_dict() == {
            "specId": "3",
            "linkText": "spec:44",
            "targetReference": "44",
            "lineNumber": 1,
            "column": 0,
            "format": "prefixed",
            "reason": "Unknown spec ID: 44",
        }


class TestCitationTargets:
    @pytest.fixture
    def target(self, spec_factory):
        return spec_factory("12")

    def broken(self, spec_factory, target, content):
        source = spec_factory("1", content=content)
        return find_broken_links(source, {"1", "12"}, [source, target])

    @pytest.mark.parametrize(
        "text",
        ["spec:12#Objective", "spec:12#objective", "spec:012#Acceptance-Criteria"],
    )
    def test_existing_section_resolves(self, spec_factory, target, text):
        assert self.broken(spec_factory, target, f"See {text}") == []

    def test_missing_section_is_broken(self, spec_factory, target):
        broken = self.broken(spec_factory, target, "See spec:12#NoSuchSection")
        assert len(broken) == 1
        assert broken[0].format == "prefixed-section"
        assert broken[0].target_reference == "12"
        assert broken[0].reason == "Section 'NoSuchSection' not found in spec 12"

    @pytest.mark.parametrize("number", [1, 2])
    def test_criterion_in_range_resolves(self, spec_factory, target, number):
        assert self.broken(spec_factory, target, f"Covers spec:12#AC-{number}") == []

    @pytest.mark.parametrize("number", [0, 3])
    def test_criterion_out_of_range_is_broken(self, spec_factory, target, number):
        broken = self.broken(spec_factory, target, f"Covers spec:12#AC-{number}")
        assert len(broken) == 1
        assert broken[0].format == "prefixed-criterion"
        assert broken[0].reason == (
            f"Acceptance criterion {number} not found in spec 12 (has 2 criteria)"
        )

    def test_target_without_criteria_section(self, spec_factory):
        target = spec_factory("12", content="## Objective\n\nText\n")
        broken = self.broken(spec_factory, target, "Covers spec:12#AC-1")
        assert "(has 0 criteria)" in broken[0].reason

    def test_sections_unchecked_without_specs(self, spec_factory):
        spec = spec_factory("1", content="See spec:12#NoSuchSection")
        assert find_broken_links(spec, {"1", "12"}) == []

    def test_snapshot_wide_checks_sections(self, spec_factory, target):
        specs = [spec_factory("1", content="See spec:12#Objective\nand spec:12#Missing"), target]
        broken = find_all_broken_links(specs)
        assert [(b.spec_id, b.line_number, b.format) for b in broken] == [
            ("1", 2, "prefixed-section"),
        ]
