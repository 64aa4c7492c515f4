"""Tests for the append-only revision log."""

from datetime import date, datetime

import pytest

from docspine.core.errors import (
    DuplicateCreatedEntry,
    InvalidFirstEntry,
    NonMonotonicDate,
    ValidationError,
)
from docspine.graph.models import Document, RevisionEntry
from docspine.graph.revision_log import CREATED_DESCRIPTION, RevisionLogManager


@pytest.fixture
def manager() -> RevisionLogManager:
    return RevisionLogManager()


@pytest.fixture
def document() -> Document:
    return Document(id="ADR-1", title="Title")


class TestAppend:
    def test_first_entry_must_be_created(self, manager, document):
        with pytest.raises(InvalidFirstEntry) as exc:
            manager.append(document, "Updated rationale", date(2024, 1, 1))
        assert exc.value.context.document_id == "ADR-1"
        assert document.revision_log == ()

    def test_created_then_update(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        entry = manager.append(document, "Updated rationale", date(2024, 1, 3))
        assert entry == RevisionEntry(date(2024, 1, 3), "Updated rationale")
        assert [e.description for e in document.revision_log] == [
            CREATED_DESCRIPTION,
            "Updated rationale",
        ]

    def test_second_created_entry_rejected(self, manager, document):
        """The created marker is only valid as the first entry."""
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        with pytest.raises(DuplicateCreatedEntry) as exc:
            manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 2))
        assert exc.value.context.document_id == "ADR-1"
        assert isinstance(exc.value, ValidationError)
        assert len(document.revision_log) == 1

    def test_same_day_allowed(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        manager.append(document, "Same day", date(2024, 1, 1))
        assert len(document.revision_log) == 2

    def test_backwards_date_rejected(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 5))
        with pytest.raises(NonMonotonicDate) as exc:
            manager.append(document, "Too early", date(2024, 1, 4))
        assert exc.value.last_date == date(2024, 1, 5)
        assert len(document.revision_log) == 1

    def test_datetime_is_normalized_to_date(self, manager, document):
        entry = manager.append(document, CREATED_DESCRIPTION, datetime(2024, 1, 1, 23, 59))
        assert entry.date == date(2024, 1, 1)

    def test_blank_description_rejected(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        with pytest.raises(ValidationError):
            manager.append(document, "  ", date(2024, 1, 1))

    def test_entries_are_immutable(self, manager, document):
        entry = manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        with pytest.raises(AttributeError):
            entry.description = "rewritten"


class TestEntries:
    def test_restartable(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        manager.append(document, "Second", date(2024, 1, 2))
        entries = manager.entries(document)
        assert list(entries) == list(entries)
        assert len(entries) == 2
        assert entries[0].description == CREATED_DESCRIPTION
        assert entries[-1].description == "Second"

    def test_iteration_is_finite_under_append(self, manager, document):
        """An iterator stops at the length it started with."""
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        seen = []
        for entry in manager.entries(document):
            seen.append(entry)
            manager.append(document, "Appended while iterating", date(2024, 1, 2))
        assert len(seen) == 1
        assert len(manager.entries(document)) == 2

    def test_slice_returns_tuple(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        assert manager.entries(document)[:1] == (RevisionEntry(date(2024, 1, 1), CREATED_DESCRIPTION),)


class TestReplay:
    def test_replay_reproduces_log(self, manager, document):
        manager.append(document, CREATED_DESCRIPTION, date(2024, 1, 1))
        manager.append(document, "Second", date(2024, 1, 2))

        fresh = Document(id="ADR-1", title="Title")
        replayed = manager.replay(fresh, document.revision_log)
        assert tuple(replayed) == document.revision_log

    def test_replay_validates(self, manager, document):
        with pytest.raises(InvalidFirstEntry):
            manager.replay(document, [RevisionEntry(date(2024, 1, 1), "Not created")])
