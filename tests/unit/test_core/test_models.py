"""
Unit tests for specgraph.core.models.
"""

from dataclasses import replace

import pytest

from specgraph.core.models import (
    FixKind,
    IssueLocation,
    Link,
    LinkSuggestion,
    LinkType,
    QuickFix,
    Severity,
    Spec,
    ValidationIssue,
    canonical_id,
    id_sort_key,
    links_from_dicts,
    specs_from_dicts,
)


class TestSpecFromDict:
    def test_coerces_ids_to_strings(self):
        spec = Spec.from_dict({"id": 12, "title": "Graph", "dependencies": [1, "2"]})
        assert spec.id == "12"
        assert spec.dependencies == ("1", "2")

    def test_defaults(self):
        spec = Spec.from_dict({"id": "3"})
        assert spec.title == ""
        assert spec.status == "planned"
        assert spec.phase == 1
        assert spec.dependencies == ()
        assert spec.tags == frozenset()
        assert spec.content == ""

    def test_invalid_values_are_kept_for_validation(self):
        spec = Spec.from_dict({"id": "3", "status": "done", "phase": "two"})
        assert spec.status == "done"
        assert spec.phase == "two"

    def test_to_dict_sorts_tags(self):
        spec = Spec(id="1", tags=frozenset({"ui", "graph"}))
        assert spec.to_dict()["tags"] == ["graph", "ui"]

    def test_specs_from_dicts(self):
        specs = specs_from_dicts([{"id": "1"}, {"id": "2", "dependencies": ["1"]}])
        assert [s.id for s in specs] == ["1", "2"]

    def test_bare_string_is_a_single_item(self):
        spec = Spec.from_dict({"id": "3", "dependencies": "12", "tags": "ui"})
        assert spec.dependencies == ("12",)
        assert spec.tags == frozenset({"ui"})

    def test_bare_number_is_a_single_item(self):
        assert Spec.from_dict({"id": "3", "dependencies": 12}).dependencies == ("12",)

    def test_non_list_dependencies_raise(self):
        with pytest.raises(TypeError):
            Spec.from_dict({"id": "3", "dependencies": object()})


class TestSpecRecord:
    def test_unchanged_spec_keeps_loaded_mapping(self):
        data = {"id": 12, "tags": ["ui", "core"], "author": "kim"}
        spec = Spec.from_dict(data)
        assert spec.to_record() == data
        assert spec.to_dict()["tags"] == ["core", "ui"]

    def test_changed_fields_are_merged(self):
        data = {"id": "3", "status": "done", "createdAt": "2024-05-01"}
        fixed = replace(Spec.from_dict(data), status="planned", phase=2)
        assert fixed.to_record() == {
            "id": "3",
            "status": "planned",
            "createdAt": "2024-05-01",
            "phase": 2,
        }

    def test_raw_does_not_affect_equality(self):
        assert Spec.from_dict({"id": "1", "author": "kim"}) == Spec(id="1")

    def test_constructed_spec_uses_to_dict(self):
        spec = Spec(id="1", tags=frozenset({"ui"}))
        assert spec.to_record() == spec.to_dict()


class TestLinkFromDict:
    def test_camel_case_flag(self):
        link = Link.from_dict(
            {"source": "1", "target": "2", "type": "implements", "isAutoDetected": True}
        )
        assert link.type == LinkType.IMPLEMENTS
        assert link.is_auto_detected is True

    def test_snake_case_flag_and_default_type(self):
        link = Link.from_dict({"source": 1, "target": 2, "is_auto_detected": True})
        assert link.source == "1"
        assert link.type == LinkType.RELATED
        assert link.is_auto_detected is True

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            Link.from_dict({"source": "1", "target": "2", "type": "mentions"})

    def test_round_trip_keys(self):
        data = Link(source="1", target="2", context="see 2").to_dict()
        assert data == {
            "source": "1",
            "target": "2",
            "type": "related",
            "isAutoDetected": False,
            "context": "see 2",
        }
        assert links_from_dicts([data])[0].context == "see 2"

    def test_unchanged_link_keeps_loaded_mapping(self):
        data = {"source": "1", "target": "2", "is_auto_detected": True, "note": "manual"}
        assert Link.from_dict(data).to_record() == data


class TestSeverity:
    def test_rank_orders_most_severe_first(self):
        ordered = sorted(Severity, key=lambda s: s.rank)
        assert ordered == [
            Severity.ERROR,
            Severity.WARNING,
            Severity.INFO,
            Severity.SUGGESTION,
        ]


class TestIds:
    @pytest.mark.parametrize(
        "value,expected",
        [("12", "12"), ("012", "12"), (" 7 ", "7"), ("0", "0"), ("12a", None), ("", None)],
    )
    def test_canonical_id(self, value, expected):
        assert canonical_id(value) == expected

    def test_id_sort_key_is_numeric_aware(self):
        assert sorted(["10", "2", "draft", "1"], key=id_sort_key) == ["1", "2", "10", "draft"]


class TestIssueSerialization:
    def test_auto_fixable_follows_fixes(self):
        fix = QuickFix(kind=FixKind.SET_FIELD, title="t", params=(("field", "status"),))
        issue = ValidationIssue(
            id="status.valid:1",
            severity=Severity.ERROR,
            code="status.valid",
            rule="valid-status",
            message="bad",
            location=IssueLocation(spec_id="1", field="status"),
            fixes=(fix,),
        )
        data = issue.to_dict()
        assert data["autoFixable"] is True
        assert data["location"] == {"specId": "1", "line": None, "field": "status"}
        assert data["fixes"][0]["params"] == {"field": "status"}

    def test_quick_fix_param_default(self):
        fix = QuickFix(kind=FixKind.APPEND_SECTION, title="t")
        assert fix.param("heading", "Objective") == "Objective"


class TestLinkSuggestion:
    def test_to_link_marks_auto_detected(self):
        suggestion = LinkSuggestion(
            target_spec_id="4", type=LinkType.EXTENDS, confidence=0.5, reason="r", context="c"
        )
        link = suggestion.to_link("2")
        assert link == Link(
            source="2", target="4", type=LinkType.EXTENDS, is_auto_detected=True, context="c"
        )

    def test_to_dict_uses_camel_case(self):
        data = LinkSuggestion(
            target_spec_id="4", type=LinkType.RELATED, confidence=0.2, reason="r"
        ).to_dict()
        assert data["targetSpecId"] == "4"
        assert data["type"] == "related"
