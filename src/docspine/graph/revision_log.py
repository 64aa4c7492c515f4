"""
Revision Log Manager - append-only, validated history per document.

Manifesto:
    A document's revision log is its audit trail. It must never be edited,
    reordered or truncated, and it must always start with the same entry so
    that "when was this created" has one answer.

    - **Append-only:** No update or delete operation exists
    - **Anchored:** The first entry, and only the first, is "Document created"
    - **Monotonic:** Entry dates never go backwards
    - **Deterministic:** Replaying the same entries yields the same log

Architecture:
    ::

        append(doc, description, date)
            │
            ├── empty log and description != "Document created"
            │        → InvalidFirstEntry
            ├── non-empty log and description == "Document created"
            │        → DuplicateCreatedEntry
            ├── date < last entry date → NonMonotonicDate
            └── doc._revisions.append(RevisionEntry(date, description))

        entries(doc) → RevisionEntries (lazy, restartable Sequence view)

Examples:
    >>> log = RevisionLogManager()
    >>> log.append(doc, "Document created", date(2025, 1, 2))
    >>> log.append(doc, "Accepted", date(2025, 1, 5))
    >>> [e.description for e in log.entries(doc)]
    ['Document created', 'Accepted']

Tags:
    revision-log, append-only, audit, doc-spine
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime
from typing import overload

from docspine.core.errors import (
    DuplicateCreatedEntry,
    InvalidFirstEntry,
    NonMonotonicDate,
    ValidationError,
)
from docspine.core.logging import get_logger
from docspine.graph.models import Document, RevisionEntry

logger = get_logger(__name__)

CREATED_DESCRIPTION = "Document created"


class RevisionEntries(Sequence[RevisionEntry]):
    """
    Read-only view over a document's revision log.

    Iteration is lazy and restartable: each ``iter()`` starts again from the
    first entry and yields entries in insertion order.
    """

    def __init__(self, document: Document) -> None:
        self._document = document

    @overload
    def __getitem__(self, index: int) -> RevisionEntry: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[RevisionEntry]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._document._revisions[index])
        return self._document._revisions[index]

    def __len__(self) -> int:
        return len(self._document._revisions)

    def __iter__(self) -> Iterator[RevisionEntry]:
        # Bound to the length at iteration start so the sequence is finite
        count = len(self._document._revisions)
        for i in range(count):
            yield self._document._revisions[i]

    def __repr__(self) -> str:
        return f"RevisionEntries(document={self._document.id!r}, count={len(self)})"


class RevisionLogManager:
    """Validating writer for document revision logs."""

    def append(
        self,
        document: Document,
        description: str,
        date: date,
    ) -> RevisionEntry:
        """
        Append one entry to ``document``'s log.

        Raises:
            InvalidFirstEntry: Empty log and description is not "Document created"
            DuplicateCreatedEntry: Non-empty log and description is "Document created"
            NonMonotonicDate: ``date`` precedes the last entry's date
            ValidationError: Blank description
        """
        if isinstance(date, datetime):
            date = date.date()

        if not description or not description.strip():
            raise ValidationError(
                f"Revision description for {document.id} must not be blank",
                field="description",
                value=description,
            ).with_context(document_id=document.id)

        revisions = document._revisions
        if not revisions and description != CREATED_DESCRIPTION:
            raise InvalidFirstEntry(document.id, description)
        if revisions and description == CREATED_DESCRIPTION:
            raise DuplicateCreatedEntry(document.id)

        if revisions and date < revisions[-1].date:
            raise NonMonotonicDate(document.id, date, revisions[-1].date)

        entry = RevisionEntry(date=date, description=description)
        revisions.append(entry)
        logger.debug(
            "revision_appended",
            document_id=document.id,
            date=entry.date.isoformat(),
            description=description,
            position=len(revisions) - 1,
        )
        return entry

    def entries(self, document: Document) -> RevisionEntries:
        """Entries of ``document`` in insertion order."""
        return RevisionEntries(document)

    def replay(self, document: Document, entries: Iterable[RevisionEntry]) -> RevisionEntries:
        """Append ``entries`` in order, with the same validation as ``append``."""
        for entry in entries:
            self.append(document, entry.description, entry.date)
        return self.entries(document)


__all__ = [
    "CREATED_DESCRIPTION",
    "RevisionEntries",
    "RevisionLogManager",
]
