"""Tests for the best-effort relationship matcher."""

import pytest

from docspine.core.errors import UnknownRelationshipKind
from docspine.graph.matching import RelationshipMatcher, SynonymMatcher
from docspine.graph.relationships import RelationshipType, classify


@pytest.fixture
def matcher() -> SynonymMatcher:
    return SynonymMatcher()


class TestExactMatch:
    def test_case_insensitive_forward(self, matcher):
        result = matcher.resolve("  depends   ON ")
        assert result.kind is RelationshipType.DEPENDS_ON
        assert result.method == "exact"
        assert result.inverted is False

    def test_reverse_label_is_inverted(self, matcher):
        result = matcher.resolve("Superseded by")
        assert result.kind is RelationshipType.SUPERSEDES
        assert result.inverted is True


class TestKeywordMatch:
    @pytest.mark.parametrize(
        "text, kind",
        [
            ("This ADR requires the auth service", RelationshipType.DEPENDS_ON),
            ("builds on the caching decision", RelationshipType.EXTENDS),
            ("replaces ADR-007", RelationshipType.SUPERSEDES),
            ("restricts which drivers we may use", RelationshipType.CONSTRAINS),
            ("realizes the event sourcing guideline", RelationshipType.IMPLEMENTS),
        ],
    )
    def test_keywords(self, matcher, text, kind):
        result = matcher.resolve(text)
        assert result.kind is kind
        assert result.method == "keyword"

    def test_custom_keywords(self):
        matcher = SynonymMatcher(keywords={"piggybacks on": RelationshipType.DEPENDS_ON})
        assert matcher.match("piggybacks on ADR-1") is RelationshipType.DEPENDS_ON


class TestSimilarityMatch:
    def test_typo(self, matcher):
        result = matcher.resolve("Implemnts")
        assert result.kind is RelationshipType.IMPLEMENTS
        assert result.method == "similarity"
        assert 0.6 <= result.score < 1.0

    def test_nothing_close(self, matcher):
        with pytest.raises(UnknownRelationshipKind):
            matcher.resolve("qwxz")

    def test_blank(self, matcher):
        with pytest.raises(UnknownRelationshipKind):
            matcher.resolve("   ")


def test_matcher_output_is_accepted_by_registry(matcher):
    """Resolution happens before the strict registry, which accepts the result."""
    assert isinstance(matcher, RelationshipMatcher)
    kind = matcher.match("relies on the queue ADR")
    assert classify(kind) is RelationshipType.DEPENDS_ON
