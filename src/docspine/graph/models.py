"""
Graph data model - documents, relationship edges, revision entries.

Pure data structures. ``Document`` is owned by the GraphStore: its
revision log and edge set change only through GraphStore and
RevisionLogManager operations, and it is never deleted, only superseded.

Design Principles:
- Edges and revision entries are frozen value objects
- Edge identity is (from_id, to_id, type); created_at is informational
- Document exposes read-only views of its log and edges
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from docspine.core.errors import format_edge
from docspine.core.timestamps import utc_now
from docspine.graph.relationships import (
    RelationshipKind,
    ReverseRelationship,
    is_forward,
    reverse_of,
)


class DocumentStatus(str, Enum):
    """Lifecycle status derived from a document's edges."""

    ACTIVE = "active"
    SUPERSEDED = "superseded"


class EdgeAction(str, Enum):
    """What happened to an edge pair."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class RevisionEntry:
    """One row of a document's revision log."""

    date: date
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "description": self.description}


@dataclass(frozen=True)
class RelationshipEdge:
    """
    Directed, typed link between two documents.

    Every edge held by the store has a mirror ``(to_id, reverse(type), from_id)``.

    Attributes:
        from_id: Document holding this edge
        to_id: Document the edge points at
        type: Forward kind, or reverse label for the mirror side
        created_at: When the pair was created (not part of identity)
    """

    from_id: str
    to_id: str
    type: RelationshipKind
    created_at: datetime = field(default_factory=utc_now, compare=False)

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity as plain strings: (from_id, label, to_id)."""
        return (self.from_id, self.type.value, self.to_id)

    @property
    def is_forward(self) -> bool:
        return is_forward(self.type)

    def mirror(self) -> RelationshipEdge:
        """The reverse-side edge of this pair."""
        return RelationshipEdge(
            from_id=self.to_id,
            to_id=self.from_id,
            type=reverse_of(self.type),
            created_at=self.created_at,
        )

    def forward(self) -> RelationshipEdge:
        """The forward-labelled edge of this pair."""
        return self if self.is_forward else self.mirror()

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "type": self.type.value,
            "created_at": self.created_at.isoformat(),
        }

    def __str__(self) -> str:
        return format_edge(self.from_id, self.type.value, self.to_id)


@dataclass
class Document:
    """
    One versionable artifact (e.g. an architecture decision record).

    Attributes:
        id: Stable identifier
        title: Human-readable title
    """

    id: str
    title: str
    _revisions: list[RevisionEntry] = field(default_factory=list, repr=False)
    _edges: dict[tuple[str, str, str], RelationshipEdge] = field(
        default_factory=dict, repr=False
    )

    @property
    def revision_log(self) -> tuple[RevisionEntry, ...]:
        """Revision entries in insertion order."""
        return tuple(self._revisions)

    @property
    def relationships(self) -> frozenset[RelationshipEdge]:
        """Outgoing edges, forward and mirror."""
        return frozenset(self._edges.values())

    @property
    def status(self) -> DocumentStatus:
        for edge in self._edges.values():
            if edge.type is ReverseRelationship.SUPERSEDED_BY:
                return DocumentStatus.SUPERSEDED
        return DocumentStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "revision_log": [e.to_dict() for e in self._revisions],
            "relationships": [
                e.to_dict() for e in sorted(self._edges.values(), key=lambda e: e.key)
            ],
        }


__all__ = [
    "DocumentStatus",
    "EdgeAction",
    "RevisionEntry",
    "RelationshipEdge",
    "Document",
]
