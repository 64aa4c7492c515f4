"""
Relationship Type Registry - the closed set of document relationship kinds.

Five forward kinds exist, each with exactly one reverse label. The mapping
is a total bijection; ``reverse_of`` is its own inverse, so the mirror of a
mirror is the original edge type.

Architecture:
    ::

        Forward (RelationshipType)     Reverse (ReverseRelationship)
        ──────────────────────────     ─────────────────────────────
        Depends on             ◀────▶  Required by
        Extends                ◀────▶  Extended by
        Constrains             ◀────▶  Constrained by
        Implements             ◀────▶  Implemented by
        Supersedes             ◀────▶  Superseded by

Guardrails:
    ❌ DON'T: Add a sixth kind in one place only
    ✅ DO: Extend both enums and every ``match`` in this module together

    ❌ DON'T: Fuzzy-match inside ``classify``
    ✅ DO: Resolve free text with a RelationshipMatcher first
           (see docspine.graph.matching)

Tags:
    registry, relationships, enum, bijection, doc-spine
"""

from __future__ import annotations

from enum import Enum

from docspine.core.errors import UnknownRelationshipKind


class RelationshipType(str, Enum):
    """Forward relationship kinds; the only labels ``classify`` accepts."""

    DEPENDS_ON = "Depends on"
    EXTENDS = "Extends"
    CONSTRAINS = "Constrains"
    IMPLEMENTS = "Implements"
    SUPERSEDES = "Supersedes"

    def __str__(self) -> str:
        return self.value


class ReverseRelationship(str, Enum):
    """Reverse labels carried by mirror edges."""

    REQUIRED_BY = "Required by"
    EXTENDED_BY = "Extended by"
    CONSTRAINED_BY = "Constrained by"
    IMPLEMENTED_BY = "Implemented by"
    SUPERSEDED_BY = "Superseded by"

    def __str__(self) -> str:
        return self.value


RelationshipKind = RelationshipType | ReverseRelationship


def forward_types() -> frozenset[RelationshipType]:
    """The five canonical forward kinds."""
    return frozenset(RelationshipType)


def reverse_of(kind: RelationshipKind) -> RelationshipKind:
    """Map a kind to its counterpart on the other side of the edge."""
    match kind:
        case RelationshipType.DEPENDS_ON:
            return ReverseRelationship.REQUIRED_BY
        case RelationshipType.EXTENDS:
            return ReverseRelationship.EXTENDED_BY
        case RelationshipType.CONSTRAINS:
            return ReverseRelationship.CONSTRAINED_BY
        case RelationshipType.IMPLEMENTS:
            return ReverseRelationship.IMPLEMENTED_BY
        case RelationshipType.SUPERSEDES:
            return ReverseRelationship.SUPERSEDED_BY
        case ReverseRelationship.REQUIRED_BY:
            return RelationshipType.DEPENDS_ON
        case ReverseRelationship.EXTENDED_BY:
            return RelationshipType.EXTENDS
        case ReverseRelationship.CONSTRAINED_BY:
            return RelationshipType.CONSTRAINS
        case ReverseRelationship.IMPLEMENTED_BY:
            return RelationshipType.IMPLEMENTS
        case ReverseRelationship.SUPERSEDED_BY:
            return RelationshipType.SUPERSEDES
        case _:
            raise UnknownRelationshipKind(kind)


def is_forward(kind: RelationshipKind) -> bool:
    """True for the five forward kinds."""
    return isinstance(kind, RelationshipType)


def classify(candidate: str | RelationshipType) -> RelationshipType:
    """
    Resolve a label to its forward kind.

    Only the exact canonical forward labels are accepted. Reverse labels,
    different casing and free text raise ``UnknownRelationshipKind``.

    Examples:
        >>> classify("Depends on")
        <RelationshipType.DEPENDS_ON: 'Depends on'>
        >>> classify("Related to")
        Traceback (most recent call last):
        ...
        UnknownRelationshipKind: Unknown relationship kind: 'Related to'
    """
    if isinstance(candidate, RelationshipType):
        return candidate
    if isinstance(candidate, ReverseRelationship) or not isinstance(candidate, str):
        raise UnknownRelationshipKind(candidate)
    try:
        return RelationshipType(candidate)
    except ValueError:
        raise UnknownRelationshipKind(candidate) from None


__all__ = [
    "RelationshipType",
    "ReverseRelationship",
    "RelationshipKind",
    "forward_types",
    "reverse_of",
    "is_forward",
    "classify",
]
