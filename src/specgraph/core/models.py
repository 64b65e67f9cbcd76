"""
Data model for the spec relationship and validation engine.

All types are frozen dataclasses holding tuples/frozensets, so a snapshot
can be shared freely between callers. The model enforces no invariants of
its own: specs may be transiently invalid while being edited, and it is the
validation engine's job to report that.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


class SpecStatus(str, Enum):
    """Lifecycle status of a spec."""

    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    IMPLEMENTED = "implemented"
    TESTED = "tested"
    DEPRECATED = "deprecated"


VALID_STATUSES = frozenset(status.value for status in SpecStatus)

MIN_PHASE = 1
MAX_PHASE = 99


class LinkType(str, Enum):
    """Closed set of relation types between two specs."""

    DEPENDS_ON = "depends_on"
    BLOCKS = "blocks"
    RELATED = "related"
    IMPLEMENTS = "implements"
    EXTENDS = "extends"
    REFERENCES = "references"


class Severity(str, Enum):
    """Validation issue severity, most severe first."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
    Severity.SUGGESTION: 3,
}


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _as_items(value: Any) -> Tuple[Any, ...]:
    """A list-valued field as a tuple; a bare string or number is one item."""
    if value is None or value == "":
        return ()
    if isinstance(value, (str, int, float)):
        return (value,)
    if isinstance(value, Mapping):
        raise TypeError(f"expected a list, got an object: {dict(value)!r}")
    return tuple(value)


@dataclass(frozen=True)
class Spec:
    """
    One specification document as seen in a snapshot.

    ``status`` and ``phase`` hold whatever the editor supplied; they are not
    coerced so that invalid values can be reported and fixed.

    ``raw`` keeps the mapping the spec was loaded from. It takes no part in
    equality; ``to_record`` merges changed fields back into it so keys the
    model does not know survive a save.
    """

    id: str
    title: str = ""
    status: str = SpecStatus.PLANNED.value
    phase: Any = MIN_PHASE
    dependencies: Tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    content: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Spec":
        """Build a Spec from a plain mapping (e.g. parsed JSON).

        Raises:
            TypeError: If ``dependencies`` or ``tags`` is neither a list nor a scalar
        """
        raw_id = data.get("id", "")
        return cls(
            id="" if raw_id is None else str(raw_id),
            title=str(data.get("title") or ""),
            status=data.get("status", SpecStatus.PLANNED.value),
            phase=data.get("phase", MIN_PHASE),
            dependencies=tuple(str(dep) for dep in _as_items(data.get("dependencies"))),
            tags=frozenset(str(tag) for tag in _as_items(data.get("tags"))),
            content=str(data.get("content") or ""),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "phase": self.phase,
            "dependencies": list(self.dependencies),
            "tags": sorted(self.tags),
            "content": self.content,
        }

    def to_record(self) -> Dict[str, Any]:
        """The mapping to write back to a snapshot.

        Starts from ``raw`` and overwrites only the fields whose value
        differs from what was loaded, so unknown keys, tag order and numeric
        IDs survive a save.
        """
        if not self.raw:
            return self.to_dict()
        loaded = Spec.from_dict(self.raw)
        record = dict(self.raw)
        for name, value in self.to_dict().items():
            if getattr(loaded, name) != getattr(self, name):
                record[name] = value
        return record


@dataclass(frozen=True)
class Link:
    """An explicit, typed relation ``source -> target``."""

    source: str
    target: str
    type: LinkType = LinkType.RELATED
    is_auto_detected: bool = False
    context: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Link":
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            type=LinkType(data.get("type", LinkType.RELATED.value)),
            is_auto_detected=bool(
                _first(data, "isAutoDetected", "is_auto_detected", default=False)
            ),
            context=data.get("context"),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "isAutoDetected": self.is_auto_detected,
            "context": self.context,
        }

    def to_record(self) -> Dict[str, Any]:
        """The loaded mapping when the link is unchanged, else ``to_dict()``."""
        if self.raw and Link.from_dict(self.raw) == self:
            return dict(self.raw)
        return self.to_dict()


class FixKind(str, Enum):
    """Operations a QuickFix can perform on a spec."""

    SET_FIELD = "set_field"
    REMOVE_DEPENDENCY = "remove_dependency"
    APPEND_SECTION = "append_section"
    NORMALIZE_CRITERIA = "normalize_criteria"


@dataclass(frozen=True)
class QuickFix:
    """
    A serializable, idempotent transformation of a spec.

    The operation is described by ``kind`` plus ``params``; it is applied by
    :func:`specgraph.core.fixes.apply_fix`.
    """

    kind: FixKind
    title: str
    description: str = ""
    params: Tuple[Tuple[str, Any], ...] = ()

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "params": dict(self.params),
        }


@dataclass(frozen=True)
class IssueLocation:
    spec_id: str
    line: Optional[int] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"specId": self.spec_id, "line": self.line, "field": self.field}


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding produced by a validation rule."""

    id: str
    severity: Severity
    code: str
    rule: str
    message: str
    location: Optional[IssueLocation] = None
    fixes: Tuple[QuickFix, ...] = ()

    @property
    def auto_fixable(self) -> bool:
        return bool(self.fixes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "code": self.code,
            "rule": self.rule,
            "message": self.message,
            "location": self.location.to_dict() if self.location else None,
            "autoFixable": self.auto_fixable,
            "fixes": [fix.to_dict() for fix in self.fixes],
        }


@dataclass(frozen=True)
class LinkSuggestion:
    """A proposed link from the spec under inspection to ``target_spec_id``."""

    target_spec_id: str
    type: LinkType
    confidence: float
    reason: str
    context: str = ""
    signals: Tuple[str, ...] = ()

    def to_link(self, source_id: str) -> Link:
        """Turn an accepted suggestion into an auto-detected Link."""
        return Link(
            source=source_id,
            target=self.target_spec_id,
            type=self.type,
            is_auto_detected=True,
            context=self.context or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetSpecId": self.target_spec_id,
            "type": self.type.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "context": self.context,
            "signals": list(self.signals),
        }


@dataclass(frozen=True)
class BrokenLink:
    """A textual spec reference that does not resolve.

    Either the cited ID is unknown, or the ID is known but the cited
    ``#Section`` or ``#AC-N`` criterion does not exist in that spec.
    """

    spec_id: str
    link_text: str
    target_reference: str
    line_number: int
    column: int = 0
    format: str = ""
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specId": self.spec_id,
            "linkText": self.link_text,
            "targetReference": self.target_reference,
            "lineNumber": self.line_number,
            "column": self.column,
            "format": self.format,
            "reason": self.reason,
        }


def specs_from_dicts(items: Iterable[Mapping[str, Any]]) -> List[Spec]:
    return [Spec.from_dict(item) for item in items]


def links_from_dicts(items: Iterable[Mapping[str, Any]]) -> List[Link]:
    return [Link.from_dict(item) for item in items]


def canonical_id(value: str) -> Optional[str]:
    """Normalize a numeric spec reference so that "012" and "12" compare equal.

    Returns None for values that are not purely numeric.
    """
    text = str(value).strip()
    if not text.isdigit():
        return None
    return str(int(text))


def id_sort_key(spec_id: str) -> Tuple[int, int, str]:
    """Sort numeric IDs numerically, anything else lexically after them."""
    normalized = canonical_id(spec_id)
    if normalized is None:
        return (1, 0, spec_id)
    return (0, int(normalized), spec_id)
