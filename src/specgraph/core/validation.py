"""
Validation rules for specs.

Every rule is a plain callable ``(spec, all_specs, config)`` yielding
ValidationIssue values. Data problems are reported as issues, never raised;
only a missing spec or snapshot raises ContractViolationError.
"""

import logging
import re
from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from specgraph.config import ValidationConfig
from specgraph.core.cycles import find_cycles, format_cycle
from specgraph.core.errors import require
from specgraph.core.fixes import (
    CRITERIA_SECTION,
    append_section_fix,
    apply_fixes,
    has_section,
    normalize_criteria_fix,
    remove_dependency_fix,
    set_field_fix,
    unchecked_criteria_lines,
)
from specgraph.core.graph import build_graph
from specgraph.core.models import (
    MAX_PHASE,
    MIN_PHASE,
    VALID_STATUSES,
    IssueLocation,
    QuickFix,
    Severity,
    Spec,
    SpecStatus,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_RULES",
    "RuleRegistry",
    "ValidationReport",
    "ValidationRule",
    "SpecValidationResult",
    "apply_fixes",
    "fixable_issues",
    "validate_snapshot",
    "validate_spec",
]

RuleFunc = Callable[[Spec, Sequence[Spec], ValidationConfig], Iterable[ValidationIssue]]

_SPEC_ID = re.compile(r"[0-9]{1,4}")
_CONTEXT_LINE = re.compile(
    r"^\s*\**\s*Estimated Context\s*:?\s*\**\s*:?\s*(?P<value>.*)$", re.IGNORECASE
)
_CONTEXT_VALUE = re.compile(r"^~\s*(?P<pct>\d{1,3})\s*%")

# Common ways people spell a status; used only for the did-you-mean hint.
STATUS_ALIASES = {
    "todo": SpecStatus.PLANNED.value,
    "draft": SpecStatus.PLANNED.value,
    "wip": SpecStatus.IN_PROGRESS.value,
    "in progress": SpecStatus.IN_PROGRESS.value,
    "in_progress": SpecStatus.IN_PROGRESS.value,
    "inprogress": SpecStatus.IN_PROGRESS.value,
    "done": SpecStatus.IMPLEMENTED.value,
    "complete": SpecStatus.IMPLEMENTED.value,
    "completed": SpecStatus.IMPLEMENTED.value,
    "verified": SpecStatus.TESTED.value,
    "obsolete": SpecStatus.DEPRECATED.value,
}


def _suggest_value(value: str, valid_values: Iterable[str], n: int = 1) -> Optional[str]:
    """
    Suggest a close match for an invalid value.

    Returns:
        Suggestion string like "did you mean 'X'?" or None if no close match
    """
    if not value:
        return None
    alias = STATUS_ALIASES.get(value.strip().lower())
    if alias:
        return f"did you mean '{alias}'?"
    matches = get_close_matches(value.lower(), sorted(valid_values), n=n, cutoff=0.6)
    if matches:
        return f"did you mean '{matches[0]}'?"
    return None


def _issue(
    rule: str,
    code: str,
    severity: Severity,
    spec: Spec,
    message: str,
    *,
    key: str = "",
    field_name: Optional[str] = None,
    line: Optional[int] = None,
    fixes: Tuple[QuickFix, ...] = (),
) -> ValidationIssue:
    issue_id = f"{code}:{spec.id}"
    if key:
        issue_id = f"{issue_id}:{key}"
    return ValidationIssue(
        id=issue_id,
        severity=severity,
        code=code,
        rule=rule,
        message=message,
        location=IssueLocation(spec_id=spec.id, line=line, field=field_name),
        fixes=fixes,
    )


# Metadata rules


def check_required_id(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if not spec.id.strip():
        yield _issue(
            "required-id", "id.required", Severity.ERROR, spec,
            "Spec ID is required", field_name="id",
        )


def check_required_title(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if not spec.title.strip():
        yield _issue(
            "required-title", "title.required", Severity.ERROR, spec,
            "Spec title is required", field_name="title",
        )


def check_id_format(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if not spec.id or _SPEC_ID.fullmatch(spec.id):
        return
    digits = re.sub(r"[^0-9]", "", spec.id)[:4]
    fixes: Tuple[QuickFix, ...] = ()
    if digits:
        fixes = (
            set_field_fix(
                "id", digits, f"Change ID to '{digits}'",
                "Keeps the digits of the current ID, at most four",
            ),
        )
    yield _issue(
        "id-format", "id.format", Severity.ERROR, spec,
        f"Spec ID '{spec.id}' must be 1 to 4 digits",
        field_name="id", fixes=fixes,
    )


def check_unique_id(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    """Report other snapshot entries sharing the spec's ID.

    A spec is validated as an edit of the snapshot entry with the same ID,
    the same model the cycle check uses: a draft that is not itself in
    ``all_specs`` but reuses an existing ID stands in for that entry and is
    not reported. Only entries beyond the one it replaces count.
    """
    if not spec.id:
        return
    duplicates = max(sum(1 for other in all_specs if other.id == spec.id) - 1, 0)
    if duplicates:
        yield _issue(
            "unique-id", "id.unique", Severity.ERROR, spec,
            f"Spec ID '{spec.id}' is used by {duplicates} other spec(s)",
            field_name="id",
        )


def check_valid_status(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    status = spec.status
    if isinstance(status, str) and status in VALID_STATUSES:
        return
    message = f"Invalid status '{status}'"
    hint = _suggest_value(status, VALID_STATUSES) if isinstance(status, str) else None
    if hint:
        message += f"; {hint}"
    message += f". Valid statuses: {', '.join(s.value for s in SpecStatus)}"
    yield _issue(
        "valid-status", "status.valid", Severity.ERROR, spec, message,
        field_name="status",
        fixes=(
            set_field_fix(
                "status", SpecStatus.PLANNED.value, "Set status to 'planned'"
            ),
        ),
    )


def check_valid_phase(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    phase = spec.phase
    is_int = isinstance(phase, int) and not isinstance(phase, bool)
    if is_int and MIN_PHASE <= phase <= MAX_PHASE:
        return
    fixed = min(max(phase, MIN_PHASE), MAX_PHASE) if is_int else MIN_PHASE
    yield _issue(
        "valid-phase", "phase.valid", Severity.ERROR, spec,
        f"Phase must be an integer between {MIN_PHASE} and {MAX_PHASE}, got {phase!r}",
        field_name="phase",
        fixes=(set_field_fix("phase", fixed, f"Set phase to {fixed}"),),
    )


# Dependency rules


def check_dependencies_exist(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    known = {other.id for other in all_specs}
    reported = set()
    for dep_id in spec.dependencies:
        if dep_id == spec.id or dep_id in known or dep_id in reported:
            continue
        reported.add(dep_id)
        yield _issue(
            "dependencies-exist", "dependencies.exist", Severity.ERROR, spec,
            f"Dependency '{dep_id}' does not exist",
            key=dep_id, field_name="dependencies",
            fixes=(remove_dependency_fix(dep_id),),
        )


def check_self_dependency(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if spec.id and spec.id in spec.dependencies:
        yield _issue(
            "self-dependency", "dependencies.self", Severity.ERROR, spec,
            f"Spec {spec.id} depends on itself",
            field_name="dependencies",
            fixes=(remove_dependency_fix(spec.id, "Remove self-dependency"),),
        )


def _substitute(spec: Spec, all_specs: Sequence[Spec]) -> List[Spec]:
    snapshot = list(all_specs)
    for index, other in enumerate(snapshot):
        if other.id == spec.id:
            snapshot[index] = spec
            return snapshot
    snapshot.append(spec)
    return snapshot


def check_circular_dependencies(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if not spec.id:
        return
    graph = build_graph(_substitute(spec, all_specs))
    for cycle in find_cycles(graph, config.cycle_edge_types):
        if len(cycle) < 2 or spec.id not in cycle:
            continue
        path = format_cycle(cycle)
        yield _issue(
            "circular-dependencies", "dependencies.circular", Severity.ERROR, spec,
            f"Circular dependency: {path}",
            key="-".join(cycle), field_name="dependencies",
        )


# Content rules


def check_context_format(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    if not spec.content.strip():
        return
    for index, line in enumerate(spec.content.splitlines(), start=1):
        match = _CONTEXT_LINE.match(line)
        if not match:
            continue
        value = match.group("value").strip()
        pct = _CONTEXT_VALUE.match(value)
        if pct and 1 <= int(pct.group("pct")) <= 100:
            return
        yield _issue(
            "context-format", "content.context-format", Severity.INFO, spec,
            f"Estimated context should read '~N%' (1-100), got '{value}'",
            line=index, field_name="content",
        )
        return
    yield _issue(
        "context-format", "content.context-format", Severity.SUGGESTION, spec,
        "Add an '**Estimated Context:** ~N%' line to the header",
        field_name="content",
    )


def check_required_sections(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    for heading in config.required_sections:
        if has_section(spec.content, heading):
            continue
        yield _issue(
            "required-sections", "content.required-sections", Severity.WARNING, spec,
            f"Missing required section '## {heading}'",
            key=heading.lower().replace(" ", "-"), field_name="content",
            fixes=(append_section_fix(heading),),
        )


def check_criteria_format(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    offending = unchecked_criteria_lines(spec.content, CRITERIA_SECTION)
    if not offending:
        return
    yield _issue(
        "criteria-format", "content.criteria-format", Severity.INFO, spec,
        f"{len(offending)} acceptance criteria item(s) are not checkboxes ('- [ ]')",
        line=offending[0] + 1, field_name="content",
        fixes=(normalize_criteria_fix(CRITERIA_SECTION),),
    )


def check_content_length(
    spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
) -> Iterator[ValidationIssue]:
    length = len(spec.content.strip())
    if length == 0:
        yield _issue(
            "content-length", "content.length", Severity.WARNING, spec,
            "Spec content is empty", field_name="content",
        )
    elif length < config.min_content_length:
        yield _issue(
            "content-length", "content.length", Severity.SUGGESTION, spec,
            f"Spec content is short ({length} characters, "
            f"{config.min_content_length} recommended)",
            field_name="content",
        )


# Rule registry


@dataclass(frozen=True)
class ValidationRule:
    name: str
    check: RuleFunc
    description: str = ""

    def __call__(
        self, spec: Spec, all_specs: Sequence[Spec], config: ValidationConfig
    ) -> Iterable[ValidationIssue]:
        return self.check(spec, all_specs, config)


DEFAULT_RULES: Tuple[ValidationRule, ...] = (
    ValidationRule("required-id", check_required_id, "Spec has an ID"),
    ValidationRule("required-title", check_required_title, "Spec has a title"),
    ValidationRule("id-format", check_id_format, "ID is 1 to 4 digits"),
    ValidationRule("unique-id", check_unique_id, "No other spec shares the ID"),
    ValidationRule("valid-status", check_valid_status, "Status is a known lifecycle value"),
    ValidationRule("valid-phase", check_valid_phase, "Phase is an integer in 1..99"),
    ValidationRule("dependencies-exist", check_dependencies_exist, "Dependencies resolve"),
    ValidationRule("self-dependency", check_self_dependency, "Spec does not depend on itself"),
    ValidationRule(
        "circular-dependencies", check_circular_dependencies, "Spec is on no dependency cycle"
    ),
    ValidationRule("context-format", check_context_format, "Estimated context reads ~N%"),
    ValidationRule("required-sections", check_required_sections, "Required sections present"),
    ValidationRule("criteria-format", check_criteria_format, "Criteria are checkboxes"),
    ValidationRule("content-length", check_content_length, "Content is substantial"),
)


class RuleRegistry:
    """
    Ordered collection of validation rules.

    Starts from DEFAULT_RULES unless given another list; extra rules are
    appended, either directly or with ``register`` as a decorator::

        registry = RuleRegistry()

        @registry.register("no-todo")
        def no_todo(spec, all_specs, config):
            ...
    """

    def __init__(self, rules: Optional[Iterable[ValidationRule]] = None) -> None:
        self._rules: List[ValidationRule] = list(DEFAULT_RULES if rules is None else rules)

    def add(self, rule: ValidationRule) -> None:
        if any(existing.name == rule.name for existing in self._rules):
            raise ValueError(f"Rule '{rule.name}' is already registered")
        self._rules.append(rule)

    def register(self, name: str, description: str = "") -> Callable[[RuleFunc], RuleFunc]:
        def decorator(func: RuleFunc) -> RuleFunc:
            self.add(ValidationRule(name, func, description or (func.__doc__ or "").strip()))
            return func

        return decorator

    def names(self) -> List[str]:
        return [rule.name for rule in self._rules]

    def __iter__(self) -> Iterator[ValidationRule]:
        return iter(list(self._rules))

    def __len__(self) -> int:
        return len(self._rules)


def validate_spec(
    spec: Spec,
    all_specs: Sequence[Spec],
    *,
    rules: Optional[Iterable[Callable[..., Iterable[ValidationIssue]]]] = None,
    config: Optional[ValidationConfig] = None,
) -> List[ValidationIssue]:
    """
    Run every rule against one spec.

    Args:
        spec: Spec to validate (may differ from its snapshot entry while editing)
        all_specs: Snapshot used for uniqueness, dependency and cycle checks
        rules: Rules to run, in order (default: DEFAULT_RULES)
        config: Rule settings (default: ValidationConfig())

    Returns:
        Issues sorted by severity (errors first); ties keep rule order

    Raises:
        ContractViolationError: If spec or all_specs is None
    """
    require(spec, "spec")
    require(all_specs, "all_specs")
    config = config or ValidationConfig()

    issues: List[ValidationIssue] = []
    for rule in DEFAULT_RULES if rules is None else rules:
        issues.extend(rule(spec, all_specs, config))

    issues.sort(key=lambda issue: issue.severity.rank)
    logger.debug("Validated spec %s: %d issue(s)", spec.id, len(issues))
    return issues


def fixable_issues(issues: Iterable[ValidationIssue]) -> List[ValidationIssue]:
    return [issue for issue in issues if issue.auto_fixable]


@dataclass
class SpecValidationResult:
    """Issues for one spec of a snapshot."""

    spec_id: str
    issues: List[ValidationIssue] = field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def is_valid(self) -> bool:
        return self.count(Severity.ERROR) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specId": self.spec_id,
            "isValid": self.is_valid,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class ValidationReport:
    """
    Snapshot-wide validation outcome.

    Results are in snapshot order; specs sharing an ID get separate entries.
    """

    results: List[SpecValidationResult] = field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(result.count(severity) for result in self.results)

    @property
    def error_count(self) -> int:
        return self.count(Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return self.count(Severity.WARNING)

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0

    def issues_for(self, spec_id: str) -> List[ValidationIssue]:
        return [
            issue
            for result in self.results
            if result.spec_id == spec_id
            for issue in result.issues
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "counts": {severity.value: self.count(severity) for severity in Severity},
            "results": [result.to_dict() for result in self.results],
        }


def validate_snapshot(
    all_specs: Sequence[Spec],
    *,
    rules: Optional[Iterable[Callable[..., Iterable[ValidationIssue]]]] = None,
    config: Optional[ValidationConfig] = None,
) -> ValidationReport:
    """Validate every spec of a snapshot against the snapshot itself."""
    require(all_specs, "all_specs")
    rule_list = list(DEFAULT_RULES if rules is None else rules)
    report = ValidationReport(
        results=[
            SpecValidationResult(
                spec_id=spec.id,
                issues=validate_spec(spec, all_specs, rules=rule_list, config=config),
            )
            for spec in all_specs
        ]
    )
    logger.debug(
        "Validated %d spec(s): %d error(s), %d warning(s)",
        len(report.results),
        report.error_count,
        report.warning_count,
    )
    return report
