"""Tests for the closed relationship type registry."""

import pytest

from docspine.core.errors import UnknownRelationshipKind
from docspine.graph.relationships import (
    RelationshipType,
    ReverseRelationship,
    classify,
    forward_types,
    is_forward,
    reverse_of,
)


class TestForwardTypes:
    def test_exactly_five(self):
        assert {t.value for t in forward_types()} == {
            "Depends on",
            "Extends",
            "Constrains",
            "Implements",
            "Supersedes",
        }


class TestReverseOf:
    @pytest.mark.parametrize(
        "forward, reverse",
        [
            (RelationshipType.DEPENDS_ON, ReverseRelationship.REQUIRED_BY),
            (RelationshipType.EXTENDS, ReverseRelationship.EXTENDED_BY),
            (RelationshipType.CONSTRAINS, ReverseRelationship.CONSTRAINED_BY),
            (RelationshipType.IMPLEMENTS, ReverseRelationship.IMPLEMENTED_BY),
            (RelationshipType.SUPERSEDES, ReverseRelationship.SUPERSEDED_BY),
        ],
    )
    def test_pairs(self, forward, reverse):
        assert reverse_of(forward) is reverse
        assert reverse_of(reverse) is forward

    def test_bijection(self):
        """Every forward kind maps to a distinct reverse kind."""
        reverses = {reverse_of(t) for t in forward_types()}
        assert reverses == set(ReverseRelationship)

    def test_unknown_kind(self):
        with pytest.raises(UnknownRelationshipKind):
            reverse_of("Related to")

    def test_is_forward(self):
        assert is_forward(RelationshipType.EXTENDS)
        assert not is_forward(ReverseRelationship.EXTENDED_BY)


class TestClassify:
    @pytest.mark.parametrize("label", [t.value for t in RelationshipType])
    def test_canonical_labels(self, label):
        assert classify(label).value == label

    def test_enum_passthrough(self):
        assert classify(RelationshipType.SUPERSEDES) is RelationshipType.SUPERSEDES

    @pytest.mark.parametrize(
        "candidate",
        ["Related to", "depends on", "Depends On", " Depends on", "Required by", "", None, 3],
    )
    def test_rejects_everything_else(self, candidate):
        """No fuzzy matching, no casing tolerance, no reverse labels."""
        with pytest.raises(UnknownRelationshipKind):
            classify(candidate)

    def test_rejects_reverse_enum(self):
        with pytest.raises(UnknownRelationshipKind):
            classify(ReverseRelationship.REQUIRED_BY)
