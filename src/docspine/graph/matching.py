"""
Best-effort resolution of free-text relationship descriptions.

Authors describe relationships loosely ("builds on ADR-7", "replaces the
old caching decision"). The registry's ``classify`` rejects anything but
the five canonical labels, so callers holding free text resolve it here
first and hand the registry a canonical kind.

Matching order:
    1. Exact label, forward or reverse (case-insensitive)
    2. Keyword table ("requires", "builds on", "replaces", ...)
    3. Nearest canonical label by ``difflib`` similarity above ``cutoff``

A reverse-label match reports ``inverted=True``: the caller must swap the
edge's endpoints before calling ``GraphStore.add_edge``.

Example:
    >>> matcher = SynonymMatcher()
    >>> matcher.resolve("builds on").kind
    <RelationshipType.EXTENDS: 'Extends'>
    >>> matcher.resolve("Superseded by")
    MatchResult(kind=<RelationshipType.SUPERSEDES: 'Supersedes'>, inverted=True, ...)
"""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from docspine.core.errors import UnknownRelationshipKind
from docspine.core.logging import get_logger
from docspine.graph.relationships import (
    RelationshipType,
    ReverseRelationship,
    reverse_of,
)

logger = get_logger(__name__)


@runtime_checkable
class RelationshipMatcher(Protocol):
    """Resolve free text to one of the five forward kinds."""

    def match(self, text: str) -> RelationshipType:
        ...


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a best-effort match."""

    kind: RelationshipType
    inverted: bool
    method: str  # "exact" | "keyword" | "similarity"
    score: float = 1.0


DEFAULT_KEYWORDS: dict[str, RelationshipType] = {
    "depends on": RelationshipType.DEPENDS_ON,
    "depends upon": RelationshipType.DEPENDS_ON,
    "requires": RelationshipType.DEPENDS_ON,
    "relies on": RelationshipType.DEPENDS_ON,
    "needs": RelationshipType.DEPENDS_ON,
    "builds on": RelationshipType.EXTENDS,
    "builds upon": RelationshipType.EXTENDS,
    "expands": RelationshipType.EXTENDS,
    "refines": RelationshipType.EXTENDS,
    "limits": RelationshipType.CONSTRAINS,
    "restricts": RelationshipType.CONSTRAINS,
    "bounds": RelationshipType.CONSTRAINS,
    "realizes": RelationshipType.IMPLEMENTS,
    "realises": RelationshipType.IMPLEMENTS,
    "fulfills": RelationshipType.IMPLEMENTS,
    "replaces": RelationshipType.SUPERSEDES,
    "obsoletes": RelationshipType.SUPERSEDES,
    "deprecates": RelationshipType.SUPERSEDES,
}


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip().lower())


class SynonymMatcher:
    """Keyword and similarity based matcher.

    Args:
        keywords: Phrase → kind table, checked as substrings of the input
        cutoff: Minimum ``difflib`` ratio for the similarity fallback
    """

    def __init__(
        self,
        keywords: dict[str, RelationshipType] | None = None,
        cutoff: float = 0.6,
    ) -> None:
        self.keywords = {
            _normalize(k): v for k, v in (keywords or DEFAULT_KEYWORDS).items()
        }
        self.cutoff = cutoff
        self._labels: dict[str, RelationshipType | ReverseRelationship] = {
            _normalize(kind.value): kind
            for kind in (*RelationshipType, *ReverseRelationship)
        }

    def match(self, text: str) -> RelationshipType:
        return self.resolve(text).kind

    def resolve(self, text: str) -> MatchResult:
        """Resolve ``text``; raises ``UnknownRelationshipKind`` when nothing is close."""
        normalized = _normalize(text)
        if not normalized:
            raise UnknownRelationshipKind(text)

        exact = self._labels.get(normalized)
        if exact is not None:
            if isinstance(exact, ReverseRelationship):
                return MatchResult(kind=reverse_of(exact), inverted=True, method="exact")
            return MatchResult(kind=exact, inverted=False, method="exact")

        # Longest phrase first so "depends upon" wins over "depends"
        for phrase in sorted(self.keywords, key=len, reverse=True):
            if re.search(rf"\b{re.escape(phrase)}\b", normalized):
                return MatchResult(kind=self.keywords[phrase], inverted=False, method="keyword")

        best_label, best_score = None, 0.0
        for label in self._labels:
            score = difflib.SequenceMatcher(None, normalized, label).ratio()
            if score > best_score:
                best_label, best_score = label, score

        if best_label is None or best_score < self.cutoff:
            logger.debug("relationship_match_failed", text=text, best_score=round(best_score, 3))
            raise UnknownRelationshipKind(text)

        kind = self._labels[best_label]
        if isinstance(kind, ReverseRelationship):
            return MatchResult(
                kind=reverse_of(kind), inverted=True, method="similarity", score=best_score
            )
        return MatchResult(kind=kind, inverted=False, method="similarity", score=best_score)


__all__ = ["RelationshipMatcher", "MatchResult", "SynonymMatcher", "DEFAULT_KEYWORDS"]
