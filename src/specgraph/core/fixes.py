"""
QuickFix construction and application.

A QuickFix is data (kind + params), not a closure, so issues can be
serialized and handed to a UI. ``apply_fix`` dispatches on the kind and
returns a new Spec; every operation is idempotent, so applying a fix to an
already-fixed spec returns it unchanged.
"""

import re
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from specgraph.core.errors import ContractViolationError, require
from specgraph.core.models import FixKind, QuickFix, Spec, ValidationIssue

# Fields a SET_FIELD fix may touch.
SETTABLE_FIELDS = frozenset({"id", "title", "status", "phase"})

SECTION_PLACEHOLDER = "_TODO: describe._"
CRITERIA_SECTION = "Acceptance Criteria"

_HEADING = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<title>.+?)\s*#*\s*$")
_BULLET = re.compile(r"^(?P<indent>\s*)(?P<marker>[-*+])\s+(?P<rest>.*)$")
_CHECKBOX = re.compile(r"^\[[ xX]\](?:\s|$)")


# Markdown helpers shared with the validation rules and citation checks


def section_bounds(content: str, heading: str) -> Optional[Tuple[int, int]]:
    """
    Locate a level-2 section by heading text (case-insensitive).

    Returns:
        (first body line index, end line index exclusive) over
        ``content.splitlines()``, or None if the heading is absent
    """
    lines = content.splitlines()
    wanted = heading.strip().lower()
    start: Optional[int] = None
    for index, line in enumerate(lines):
        match = _HEADING.match(line)
        if not match:
            continue
        level = len(match.group("hashes"))
        if start is None:
            if level == 2 and match.group("title").strip().lower() == wanted:
                start = index + 1
        elif level <= 2:
            return start, index
    if start is None:
        return None
    return start, len(lines)


def has_section(content: str, heading: str) -> bool:
    return section_bounds(content, heading) is not None


def unchecked_criteria_lines(content: str, heading: str = CRITERIA_SECTION) -> List[int]:
    """Indexes of plain (non-checkbox) bullet lines inside the criteria section."""
    bounds = section_bounds(content, heading)
    if bounds is None:
        return []
    lines = content.splitlines()
    offending = []
    for index in range(*bounds):
        match = _BULLET.match(lines[index])
        if match and not _CHECKBOX.match(match.group("rest")):
            offending.append(index)
    return offending


def criteria_count(content: str, heading: str = CRITERIA_SECTION) -> int:
    """Number of top-level bullet items in the criteria section."""
    bounds = section_bounds(content, heading)
    if bounds is None:
        return 0
    lines = content.splitlines()
    count = 0
    for index in range(*bounds):
        match = _BULLET.match(lines[index])
        if match and not match.group("indent"):
            count += 1
    return count


# Fix builders


def set_field_fix(field: str, value: Any, title: str, description: str = "") -> QuickFix:
    if field not in SETTABLE_FIELDS:
        raise ContractViolationError("field", f"Field '{field}' cannot be set by a fix")
    return QuickFix(
        kind=FixKind.SET_FIELD,
        title=title,
        description=description,
        params=(("field", field), ("value", value)),
    )


def remove_dependency_fix(dependency_id: str, title: Optional[str] = None) -> QuickFix:
    return QuickFix(
        kind=FixKind.REMOVE_DEPENDENCY,
        title=title or f"Remove dependency '{dependency_id}'",
        description="Drops the reference and keeps the remaining dependencies in order",
        params=(("dependency_id", dependency_id),),
    )


def append_section_fix(heading: str, body: str = SECTION_PLACEHOLDER) -> QuickFix:
    return QuickFix(
        kind=FixKind.APPEND_SECTION,
        title=f"Add '## {heading}' section",
        description="Appends the missing heading with a placeholder body",
        params=(("heading", heading), ("body", body)),
    )


def normalize_criteria_fix(heading: str = CRITERIA_SECTION) -> QuickFix:
    return QuickFix(
        kind=FixKind.NORMALIZE_CRITERIA,
        title="Convert criteria to checkboxes",
        description=f"Turns plain bullets under '## {heading}' into unchecked checkboxes",
        params=(("heading", heading),),
    )


# Fix application


def _apply_set_field(spec: Spec, fix: QuickFix) -> Spec:
    field = fix.param("field")
    if field not in SETTABLE_FIELDS:
        raise ContractViolationError("fix", f"Field '{field}' cannot be set by a fix")
    value = fix.param("value")
    if getattr(spec, field) == value:
        return spec
    return replace(spec, **{field: value})


def _apply_remove_dependency(spec: Spec, fix: QuickFix) -> Spec:
    dependency_id = fix.param("dependency_id")
    if dependency_id not in spec.dependencies:
        return spec
    return replace(
        spec,
        dependencies=tuple(dep for dep in spec.dependencies if dep != dependency_id),
    )


def _apply_append_section(spec: Spec, fix: QuickFix) -> Spec:
    heading = fix.param("heading")
    body = fix.param("body", SECTION_PLACEHOLDER)
    if has_section(spec.content, heading):
        return spec
    block = f"## {heading}\n\n{body}\n"
    existing = spec.content.rstrip("\n")
    content = f"{existing}\n\n{block}" if existing else block
    return replace(spec, content=content)


def _apply_normalize_criteria(spec: Spec, fix: QuickFix) -> Spec:
    heading = fix.param("heading", CRITERIA_SECTION)
    offending = unchecked_criteria_lines(spec.content, heading)
    if not offending:
        return spec
    lines = spec.content.splitlines()
    for index in offending:
        match = _BULLET.match(lines[index])
        lines[index] = f"{match.group('indent')}{match.group('marker')} [ ] {match.group('rest')}"
    content = "\n".join(lines)
    if spec.content.endswith("\n"):
        content += "\n"
    return replace(spec, content=content)


_APPLIERS: Dict[FixKind, Callable[[Spec, QuickFix], Spec]] = {
    FixKind.SET_FIELD: _apply_set_field,
    FixKind.REMOVE_DEPENDENCY: _apply_remove_dependency,
    FixKind.APPEND_SECTION: _apply_append_section,
    FixKind.NORMALIZE_CRITERIA: _apply_normalize_criteria,
}


def apply_fix(spec: Spec, fix: QuickFix) -> Spec:
    """
    Apply one QuickFix and return the resulting spec.

    Raises:
        ContractViolationError: If spec or fix is None, or the fix kind is unknown
    """
    require(spec, "spec")
    require(fix, "fix")
    applier = _APPLIERS.get(fix.kind)
    if applier is None:
        raise ContractViolationError("fix", f"Unknown fix kind: {fix.kind!r}")
    return applier(spec, fix)


def apply_fixes(spec: Spec, issues: Iterable[ValidationIssue]) -> Spec:
    """Apply every fix attached to ``issues``, in order."""
    require(spec, "spec")
    for issue in issues:
        for fix in issue.fixes:
            spec = apply_fix(spec, fix)
    return spec
