"""
Link suggestions from mentions, title overlap and shared tags.

Each candidate spec is scored by the signals it matches; the weights come
from ``SuggestionConfig`` and the total is capped at 1.0. Specs already
connected to the source (by a dependency or an explicit link, in either
direction) are never suggested again, and neither are dismissed targets.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set

from specgraph.config import SuggestionConfig
from specgraph.core.errors import require
from specgraph.core.models import Link, LinkSuggestion, LinkType, Spec, canonical_id, id_sort_key
from specgraph.core.references import SpecReference, find_references

logger = logging.getLogger(__name__)

# Checked in order; the first phrase found on the mention line wins.
_TYPE_HINTS = (
    (re.compile(r"(?i)\bimplements?\b"), LinkType.IMPLEMENTS),
    (re.compile(r"(?i)\bextends?\b"), LinkType.EXTENDS),
    (re.compile(r"(?i)\b(?:depends?\s+on|requires?|blocked\s+by)\b"), LinkType.DEPENDS_ON),
)

_WORD = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
        "into", "is", "it", "of", "on", "or", "spec", "the", "to", "with",
    }
)


def significant_tokens(text: str) -> Set[str]:
    """Lower-cased words of a title, minus stopwords and one/two-letter words."""
    return {
        word
        for word in _WORD.findall(text.lower())
        if len(word) > 2 and word not in _STOPWORDS
    }


def _jaccard(left: AbstractSet[str], right: AbstractSet[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


def infer_link_type(line: Optional[str]) -> LinkType:
    """Guess the relation type from the line a mention occurs on."""
    if line is None:
        return LinkType.RELATED
    for pattern, link_type in _TYPE_HINTS:
        if pattern.search(line):
            return link_type
    return LinkType.REFERENCES


def connected_ids(spec: Spec, all_specs: Sequence[Spec], links: Iterable[Link]) -> Set[str]:
    """IDs linked to ``spec`` in either direction by a dependency or a link."""
    connected = set(spec.dependencies)
    for other in all_specs:
        if spec.id in other.dependencies:
            connected.add(other.id)
    for link in links:
        if link.source == spec.id:
            connected.add(link.target)
        elif link.target == spec.id:
            connected.add(link.source)
    return connected


@dataclass
class _Candidate:
    spec: Spec
    score: float = 0.0
    reasons: List[str] = field(default_factory=list)
    signals: List[str] = field(default_factory=list)
    mention: Optional[SpecReference] = None
    mention_line: Optional[str] = None


def suggest_links(
    spec: Spec,
    all_specs: Sequence[Spec],
    dismissed: AbstractSet[str] = frozenset(),
    *,
    links: Sequence[Link] = (),
    config: Optional[SuggestionConfig] = None,
) -> List[LinkSuggestion]:
    """
    Suggest links from ``spec`` to other specs in the snapshot.

    Args:
        spec: Spec being edited
        all_specs: Snapshot of all specs
        dismissed: Target IDs the user already rejected for this spec
        links: Explicit link table, used to skip already-connected targets
        config: Weights, limit and threshold (default: SuggestionConfig())

    Returns:
        Suggestions by descending confidence, ties broken by target ID
    """
    require(spec, "spec")
    require(all_specs, "all_specs")
    config = config or SuggestionConfig()
    dismissed = dismissed or frozenset()

    excluded = connected_ids(spec, all_specs, links or ())
    excluded.add(spec.id)
    excluded.update(dismissed)

    candidates: Dict[str, _Candidate] = {}
    by_canonical: Dict[str, str] = {}
    for other in all_specs:
        if other.id in excluded or other.id in candidates:
            continue
        candidates[other.id] = _Candidate(spec=other)
        by_canonical.setdefault(canonical_id(other.id) or other.id, other.id)

    content_lines = spec.content.splitlines()
    for ref in find_references(spec.content):
        target_id = by_canonical.get(canonical_id(ref.target) or ref.target)
        if target_id is None:
            continue
        candidate = candidates[target_id]
        if candidate.mention is None:
            candidate.mention = ref
            candidate.mention_line = content_lines[ref.line_number - 1]

    content_lower = spec.content.lower()
    own_tokens = significant_tokens(spec.title)

    for candidate in candidates.values():
        other = candidate.spec
        if candidate.mention is not None:
            candidate.score += config.mention_weight
            candidate.signals.append("mention")
            candidate.reasons.append(
                f"Referenced as '{candidate.mention.text}' on line {candidate.mention.line_number}"
            )

        other_tokens = significant_tokens(other.title)
        title = other.title.strip().lower()
        if other_tokens and (
            title in content_lower
            or _jaccard(own_tokens, other_tokens) >= config.title_overlap_threshold
        ):
            candidate.score += config.title_weight
            candidate.signals.append("title")
            candidate.reasons.append(f"Title overlap with '{other.title}'")

        shared = spec.tags & other.tags
        if shared:
            candidate.score += config.tag_weight
            candidate.signals.append("tags")
            candidate.reasons.append(f"Shared tags: {', '.join(sorted(shared))}")

    suggestions = []
    for candidate in candidates.values():
        confidence = round(min(candidate.score, 1.0), 4)
        if not candidate.signals or confidence <= config.min_confidence:
            continue
        suggestions.append(
            LinkSuggestion(
                target_spec_id=candidate.spec.id,
                type=infer_link_type(candidate.mention_line),
                confidence=confidence,
                reason="; ".join(candidate.reasons),
                context=(candidate.mention_line or "").strip(),
                signals=tuple(candidate.signals),
            )
        )

    suggestions.sort(key=lambda s: (-s.confidence, id_sort_key(s.target_spec_id)))
    limited = suggestions[: max(config.limit, 0)]
    logger.debug(
        "Spec %s: %d link suggestion(s), %d returned", spec.id, len(suggestions), len(limited)
    )
    return limited
