"""
Textual spec references and broken-link detection.

Content is scanned line by line for the ways a spec is cited in prose:

    [Spec 12](../specs/012-graph-view.md)   markdown link
    spec:12, SPEC-012                       prefixed id
    spec:12#Objective                       prefixed id with a section
    spec:12#AC-3                            prefixed id with a criterion number
    @spec 12                                at-mention
    Spec 12, Spec #12                       plain token

Patterns are tried most specific first; a less specific match that overlaps
text already claimed by an earlier pattern is ignored, so one citation is
reported once. This is pure text scanning: a reference can be informational
without being a declared dependency, so only the global ID universe is
consulted, never the graph. When the cited specs themselves are supplied,
section and criterion citations are also resolved against their content.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Set, Tuple

from specgraph.core.errors import require
from specgraph.core.fixes import CRITERIA_SECTION, criteria_count, has_section
from specgraph.core.models import BrokenLink, Spec, canonical_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecReference:
    """A spec citation found in content."""

    text: str
    target: str
    line_number: int
    column: int
    format: str
    section: Optional[str] = None
    criterion: Optional[int] = None


_MARKDOWN_LINK = re.compile(r"\[(?P<label>[^\]]*)\]\((?P<href>[^)\s]+)\)")
_HREF_FILE_ID = re.compile(r"(?:^|/)(?P<id>\d{1,4})(?:-[\w\-]*)?\.md(?:#[^)]*)?$")
_HREF_PREFIX_ID = re.compile(r"(?i)\bspecs?[:/\-_#](?P<id>\d{1,4})(?!\d)")
_LABEL_ID = re.compile(r"(?i)\bspec\s*#?(?P<id>\d{1,4})\b")

_TEXT_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (
        "prefixed",
        re.compile(
            r"(?i)\bspec[:\-](?P<id>\d{1,4})(?!\d)"
            r"(?:#(?:AC[:\-](?P<criterion>\d+)(?![\w\-])|(?P<section>[A-Za-z][\w\-]*)))?"
        ),
    ),
    ("at-spec", re.compile(r"(?i)@spec\s+(?P<id>\d{1,4})\b")),
    ("plain", re.compile(r"(?i)\bspec\s+#?(?P<id>\d{1,4})\b")),
)


def _markdown_target(label: str, href: str) -> Optional[str]:
    for pattern, text in ((_HREF_FILE_ID, href), (_HREF_PREFIX_ID, href), (_LABEL_ID, label)):
        match = pattern.search(text)
        if match:
            return match.group("id")
    return None


def _overlaps(span: Tuple[int, int], claimed: Sequence[Tuple[int, int]]) -> bool:
    start, end = span
    return any(start < c_end and c_start < end for c_start, c_end in claimed)


def _scan_line(line: str, line_number: int) -> List[SpecReference]:
    found: List[SpecReference] = []
    claimed: List[Tuple[int, int]] = []

    for match in _MARKDOWN_LINK.finditer(line):
        target = _markdown_target(match.group("label"), match.group("href"))
        if target is None:
            continue
        claimed.append(match.span())
        found.append(
            SpecReference(
                text=match.group(0),
                target=target,
                line_number=line_number,
                column=match.start(),
                format="markdown-link",
            )
        )

    for name, pattern in _TEXT_PATTERNS:
        for match in pattern.finditer(line):
            if _overlaps(match.span(), claimed):
                continue
            claimed.append(match.span())
            groups = match.groupdict()
            criterion = groups.get("criterion")
            section = groups.get("section")
            fmt = name
            if criterion is not None:
                fmt = f"{name}-criterion"
            elif section is not None:
                fmt = f"{name}-section"
            found.append(
                SpecReference(
                    text=match.group(0),
                    target=match.group("id"),
                    line_number=line_number,
                    column=match.start(),
                    format=fmt,
                    section=section,
                    criterion=int(criterion) if criterion is not None else None,
                )
            )

    found.sort(key=lambda ref: ref.column)
    return found


def find_references(content: str) -> List[SpecReference]:
    """Every spec citation in ``content``, in line/column order."""
    references: List[SpecReference] = []
    for index, line in enumerate((content or "").splitlines(), start=1):
        references.extend(_scan_line(line, index))
    return references


def _key(spec_id: str) -> str:
    return canonical_id(spec_id) or spec_id


def _section_exists(content: str, section: str) -> bool:
    # "#Acceptance-Criteria" names the "Acceptance Criteria" heading.
    return has_section(content, section) or has_section(
        content, re.sub(r"[-_]+", " ", section)
    )


def _unresolved_reason(
    ref: SpecReference, known: Set[str], targets: Mapping[str, Spec]
) -> Optional[str]:
    key = _key(ref.target)
    if key not in known:
        return f"Unknown spec ID: {ref.target}"
    target = targets.get(key)
    if target is None:
        return None
    if ref.section is not None and not _section_exists(target.content, ref.section):
        return f"Section '{ref.section}' not found in spec {target.id}"
    if ref.criterion is not None:
        count = criteria_count(target.content, CRITERIA_SECTION)
        if ref.criterion == 0 or ref.criterion > count:
            return (
                f"Acceptance criterion {ref.criterion} not found in spec {target.id} "
                f"(has {count} criteria)"
            )
    return None


def find_broken_links(
    spec: Spec, known_ids: Iterable[str], specs: Optional[Iterable[Spec]] = None
) -> List[BrokenLink]:
    """
    Report citations in ``spec.content`` that do not resolve.

    IDs compare numerically, so ``spec:012`` resolves against ``"12"``. When
    ``specs`` is given, ``spec:12#Section`` must also name a level-2 heading
    of spec 12 (case-insensitive) and ``spec:12#AC-3`` must fall within the
    number of its acceptance criteria.

    Args:
        spec: Spec whose content is scanned
        known_ids: The global ID universe
        specs: Specs to resolve section and criterion citations against

    Returns:
        One BrokenLink per unresolved citation, with its 1-based line number
    """
    require(spec, "spec")
    require(known_ids, "known_ids")
    known: Set[str] = {_key(known_id) for known_id in known_ids}
    targets: Dict[str, Spec] = {}
    for target in specs or ():
        targets.setdefault(_key(target.id), target)

    broken: List[BrokenLink] = []
    for ref in find_references(spec.content):
        reason = _unresolved_reason(ref, known, targets)
        if reason is None:
            continue
        broken.append(
            BrokenLink(
                spec_id=spec.id,
                link_text=ref.text,
                target_reference=ref.target,
                line_number=ref.line_number,
                column=ref.column,
                format=ref.format,
                reason=reason,
            )
        )
    if broken:
        logger.debug("Spec %s has %d broken reference(s)", spec.id, len(broken))
    return broken


def find_all_broken_links(
    specs: Sequence[Spec], known_ids: Optional[Iterable[str]] = None
) -> List[BrokenLink]:
    """Broken links across a snapshot; the ID universe defaults to the snapshot's IDs."""
    require(specs, "specs")
    universe = set(known_ids) if known_ids is not None else {spec.id for spec in specs}
    results: List[BrokenLink] = []
    for spec in specs:
        results.extend(find_broken_links(spec, universe, specs))
    return results
