"""
Change proposals - evidence-justified edits awaiting approval.

A card is built from one observation: where the problem is (scope), what was
observed (evidence), why the fix is right (technique), and the exact text to
replace. Cards move through a small status machine and never reach APPLIED
without passing through APPROVED.

Architecture:
    ::

        Observation ──▶ ProposalBuilder.build_card ──▶ ChangeProposal (PENDING)
                             │
                             └── span located in the document body (optional)

        PENDING ──approve──▶ APPROVED ──mark_applied──▶ APPLIED
           │                    │  ▲
           │                    │  └── revert (conflict found at Execute)
           └──reject──▶ REJECTED ◀──reject──┘

    Two cards conflict when they target the same document and their
    ``before_text`` spans overlap. Conflicts are reported, never resolved
    silently; the engine routes them back to the approver.

Examples:
    >>> builder = ProposalBuilder()
    >>> card = builder.build_card(
    ...     "Rationale cites a retired benchmark",
    ...     "Replace stale evidence",
    ...     "benchmark v1",
    ...     "benchmark v2",
    ...     scope="ADR-100",
    ... )
    >>> card.status
    <ProposalStatus.PENDING: 'pending'>

Tags:
    proposals, cards, conflicts, approval, doc-spine
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import combinations
from typing import Any

from docspine.core.errors import (
    CardStateError,
    DocSpineError,
    MissingJustification,
    format_edge,
)
from docspine.core.logging import get_logger
from docspine.core.timestamps import generate_ulid, utc_now
from docspine.graph.models import EdgeAction, RelationshipEdge
from docspine.graph.relationships import RelationshipType, classify
from docspine.graph.store import GraphStore
from docspine.orchestration.content import ContentStore

logger = get_logger(__name__)

Span = tuple[int, int]


class ProposalStatus(str, Enum):
    """Lifecycle of a change proposal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"


_CARD_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.PENDING: frozenset({ProposalStatus.APPROVED, ProposalStatus.REJECTED}),
    ProposalStatus.APPROVED: frozenset(
        {ProposalStatus.APPLIED, ProposalStatus.REJECTED, ProposalStatus.PENDING}
    ),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.APPLIED: frozenset(),
}


@dataclass(frozen=True)
class Scope:
    """Target of a card: a document and optionally a section within it."""

    document_id: str
    section: str | None = None

    @classmethod
    def of(cls, value: Scope | str) -> Scope:
        return value if isinstance(value, Scope) else cls(document_id=value)

    def __str__(self) -> str:
        return f"{self.document_id}#{self.section}" if self.section else self.document_id


@dataclass(frozen=True)
class EdgeChange:
    """A relationship mutation carried by a card and applied during Execute."""

    action: EdgeAction
    from_id: str
    to_id: str
    type: RelationshipType

    @classmethod
    def add(cls, from_id: str, to_id: str, type: str | RelationshipType) -> EdgeChange:
        return cls(EdgeAction.ADDED, from_id, to_id, classify(type))

    @classmethod
    def remove(cls, from_id: str, to_id: str, type: str | RelationshipType) -> EdgeChange:
        return cls(EdgeAction.REMOVED, from_id, to_id, classify(type))

    def apply(self, store: GraphStore) -> RelationshipEdge:
        match self.action:
            case EdgeAction.ADDED:
                return store.add_edge(self.from_id, self.to_id, self.type)
            case EdgeAction.REMOVED:
                return store.remove_edge(self.from_id, self.to_id, self.type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "edge": format_edge(self.from_id, self.type.value, self.to_id),
        }


@dataclass(frozen=True)
class Observation:
    """
    Inputs of one card as gathered during Understand.

    Attributes:
        scope: Target document (and section)
        evidence: Observed problem with its evidence reference
        technique: Named justification for the fix
        before_text: Text to replace; empty for append-only or edge-only cards
        after_text: Replacement text
        edge_changes: Relationship mutations to apply with the edit
        description: Revision log text; derived from the technique when absent
    """

    scope: Scope | str
    evidence: str
    technique: str
    before_text: str = ""
    after_text: str = ""
    edge_changes: tuple[EdgeChange, ...] = ()
    description: str | None = None


@dataclass
class ChangeProposal:
    """A card: one structured edit awaiting approval."""

    card_id: str
    scope: Scope
    problem: str
    technique: str
    before_text: str
    after_text: str
    status: ProposalStatus = ProposalStatus.PENDING
    span: Span | None = None
    edge_changes: tuple[EdgeChange, ...] = ()
    description: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    rejection_reason: str | None = None
    failure: dict[str, Any] | None = None

    @property
    def document_id(self) -> str:
        return self.scope.document_id

    @property
    def revision_description(self) -> str:
        if self.description:
            return self.description
        where = f" ({self.scope.section})" if self.scope.section else ""
        return f"{self.technique}{where}"

    @property
    def changes_text(self) -> bool:
        return self.before_text != self.after_text

    def approve(self) -> None:
        self._move(ProposalStatus.APPROVED)

    def reject(self, reason: str | None = None) -> None:
        self._move(ProposalStatus.REJECTED)
        self.rejection_reason = reason

    def revert(self) -> None:
        """Withdraw an approval; the card waits for a fresh decision."""
        self._move(ProposalStatus.PENDING)

    def mark_applied(self) -> None:
        self._move(ProposalStatus.APPLIED)
        self.failure = None

    def record_failure(self, error: DocSpineError) -> None:
        """Keep the card APPROVED and remember why it could not be applied."""
        self.failure = error.to_dict()

    def _move(self, target: ProposalStatus) -> None:
        if target not in _CARD_TRANSITIONS[self.status]:
            raise CardStateError(self.card_id, self.status.value, target.value)
        self.status = target

    def to_dict(self) -> dict[str, Any]:
        result = {
            "card_id": self.card_id,
            "scope": str(self.scope),
            "problem": self.problem,
            "technique": self.technique,
            "status": self.status.value,
            "span": list(self.span) if self.span else None,
            "edge_changes": [c.to_dict() for c in self.edge_changes],
        }
        if self.rejection_reason:
            result["rejection_reason"] = self.rejection_reason
        if self.failure:
            result["failure"] = self.failure
        return result


@dataclass(frozen=True)
class Conflict:
    """Two cards whose ``before_text`` spans overlap in one document."""

    card_a: str
    card_b: str
    document_id: str
    span: Span | None = None

    @property
    def pair(self) -> tuple[str, str]:
        return (self.card_a, self.card_b)

    def involves(self, card_id: str) -> bool:
        return card_id in self.pair

    def other(self, card_id: str) -> str:
        return self.card_b if card_id == self.card_a else self.card_a

    def to_dict(self) -> dict[str, Any]:
        return {
            "cards": list(self.pair),
            "document_id": self.document_id,
            "span": list(self.span) if self.span else None,
        }


def spans_overlap(a: Span, b: Span) -> bool:
    """Half-open overlap; empty spans never overlap anything."""
    return a[0] < a[1] and b[0] < b[1] and a[0] < b[1] and b[0] < a[1]


def texts_overlap(a: str, b: str) -> bool:
    """
    Whether two before texts could cover shared characters of one body.

    True when one contains the other, or when a suffix of one is a prefix of
    the other ("abc" and "bcd"). Used when spans could not be located.
    """
    if not a or not b:
        return False
    if a in b or b in a:
        return True
    return any(a.endswith(b[:n]) or b.endswith(a[:n]) for n in range(1, min(len(a), len(b))))


class ProposalBuilder:
    """
    Builds cards and detects conflicts between them.

    Args:
        content: Content store used to locate each card's span; without one
            conflicts fall back to ``texts_overlap`` on the before texts
    """

    def __init__(self, content: ContentStore | None = None) -> None:
        self.content = content

    def build_card(
        self,
        problem_evidence: str,
        technique_justification: str,
        before_text: str,
        after_text: str,
        *,
        scope: Scope | str,
        edge_changes: Iterable[EdgeChange] = (),
        description: str | None = None,
    ) -> ChangeProposal:
        """
        Create a PENDING card.

        Raises:
            MissingJustification: Evidence or technique text is blank
        """
        scope = Scope.of(scope)
        if not problem_evidence or not problem_evidence.strip():
            raise MissingJustification("problem evidence", document_id=scope.document_id)
        if not technique_justification or not technique_justification.strip():
            raise MissingJustification("technique justification", document_id=scope.document_id)

        card = ChangeProposal(
            card_id=generate_ulid(),
            scope=scope,
            problem=problem_evidence,
            technique=technique_justification,
            before_text=before_text,
            after_text=after_text,
            span=self.locate(scope.document_id, before_text),
            edge_changes=tuple(edge_changes),
            description=description,
        )
        logger.debug(
            "card_built",
            card_id=card.card_id,
            document_id=scope.document_id,
            span=card.span,
            edge_changes=len(card.edge_changes),
        )
        return card

    def from_observation(self, observation: Observation) -> ChangeProposal:
        return self.build_card(
            observation.evidence,
            observation.technique,
            observation.before_text,
            observation.after_text,
            scope=observation.scope,
            edge_changes=observation.edge_changes,
            description=observation.description,
        )

    def locate(self, document_id: str, before_text: str) -> Span | None:
        """First occurrence of ``before_text`` in the document body."""
        if self.content is None or not before_text:
            return None
        start = self.content.read(document_id).find(before_text)
        if start < 0:
            return None
        return (start, start + len(before_text))

    def detect_conflict(self, card_a: ChangeProposal, card_b: ChangeProposal) -> Conflict | None:
        """Conflict when both cards edit overlapping text of the same document."""
        if card_a.card_id == card_b.card_id or card_a.document_id != card_b.document_id:
            return None
        if not card_a.before_text or not card_b.before_text:
            return None

        if card_a.span is not None and card_b.span is not None:
            if not spans_overlap(card_a.span, card_b.span):
                return None
            span = (max(card_a.span[0], card_b.span[0]), min(card_a.span[1], card_b.span[1]))
            return Conflict(card_a.card_id, card_b.card_id, card_a.document_id, span)

        if texts_overlap(card_a.before_text, card_b.before_text):
            return Conflict(card_a.card_id, card_b.card_id, card_a.document_id)
        return None

    def detect_conflicts(self, cards: Sequence[ChangeProposal]) -> list[Conflict]:
        """Pairwise check over ``cards``, in card order."""
        conflicts = []
        for card_a, card_b in combinations(cards, 2):
            conflict = self.detect_conflict(card_a, card_b)
            if conflict is not None:
                logger.info(
                    "conflict_detected",
                    document_id=conflict.document_id,
                    cards=list(conflict.pair),
                    span=conflict.span,
                )
                conflicts.append(conflict)
        return conflicts


__all__ = [
    "ProposalStatus",
    "Scope",
    "EdgeChange",
    "Observation",
    "ChangeProposal",
    "Conflict",
    "ProposalBuilder",
    "spans_overlap",
    "texts_overlap",
]
