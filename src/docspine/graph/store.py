"""
Graph Store - documents and mirrored, typed relationship edges.

Manifesto:
    A relationship recorded on one side only is worse than no relationship:
    readers of the other document never learn about it. The store therefore
    treats an edge and its mirror as one unit. Every mutation runs inside a
    transaction with an explicit undo log, so a failure between the two
    sides rolls the first side back before the error reaches the caller.

    - **Mirrored:** (A, type, B) exists iff (B, reverse(type), A) exists
    - **Atomic:** Both sides commit together or neither does
    - **Validated:** Edge types go through the registry's strict classify()
    - **Observable:** Listeners see committed edge changes only

Architecture:
    ::

        add_edge(A, B, "Depends on")
            │
            ├── classify("Depends on")          → RelationshipType.DEPENDS_ON
            ├── A, B registered?                → DocumentNotFound
            ├── (A, Depends on, B) exists?      → DuplicateEdge
            │
            └── with transaction():
                    _attach(A -[Depends on]-> B)     undo: detach
                    _attach(B -[Required by]-> A)    undo: detach
                ── commit → notify listeners(EdgeEvent(ADDED, forward edge))
                ── error  → run undo log in reverse, drop notifications

Examples:
    >>> store = GraphStore()
    >>> store.register_document("ADR-100", "Use PostgreSQL")
    >>> store.register_document("ADR-101", "Connection pooling")
    >>> store.add_edge("ADR-101", "ADR-100", "Depends on")
    >>> sorted(e.key for e in store.edges_of("ADR-100"))
    [('ADR-100', 'Required by', 'ADR-101')]

Tags:
    graph, store, mirror-invariant, transaction, undo-log, doc-spine
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime

from docspine.core.errors import (
    DocumentNotFound,
    DuplicateDocument,
    DuplicateEdge,
    EdgeNotFound,
    InvariantViolation,
    ValidationError,
    format_edge,
)
from docspine.core.logging import get_logger
from docspine.core.timestamps import utc_now, utc_today
from docspine.graph.models import (
    Document,
    EdgeAction,
    RelationshipEdge,
    RevisionEntry,
)
from docspine.graph.relationships import (
    RelationshipType,
    ReverseRelationship,
    classify,
)
from docspine.graph.revision_log import CREATED_DESCRIPTION, RevisionLogManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class EdgeEvent:
    """A committed change to one edge pair, reported by its forward edge."""

    action: EdgeAction
    edge: RelationshipEdge


EdgeListener = Callable[[EdgeEvent], None]


@dataclass
class _Transaction:
    undo: list[Callable[[], None]] = field(default_factory=list)
    events: list[EdgeEvent] = field(default_factory=list)


class GraphStore:
    """
    In-memory document graph with mirrored edges.

    Args:
        revision_log: Manager used to append revision entries
        clock: Source of revision dates when none is given
        now: Source of edge creation timestamps
    """

    def __init__(
        self,
        revision_log: RevisionLogManager | None = None,
        *,
        clock: Callable[[], date] = utc_today,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.revision_log = revision_log or RevisionLogManager()
        self._clock = clock
        self._now = now
        self._documents: dict[str, Document] = {}
        self._listeners: list[EdgeListener] = []
        self._tx: _Transaction | None = None

    # =========================================================================
    # Documents
    # =========================================================================

    def register_document(
        self,
        document_id: str,
        title: str,
        *,
        created_on: date | None = None,
    ) -> Document:
        """Register a new document and record its "Document created" entry."""
        if not document_id or not document_id.strip():
            raise ValidationError("Document id must not be blank", field="id", value=document_id)
        if document_id in self._documents:
            raise DuplicateDocument(document_id)

        document = Document(id=document_id, title=title)
        self.revision_log.append(document, CREATED_DESCRIPTION, created_on or self._clock())
        self._documents[document_id] = document
        logger.info("document_registered", document_id=document_id, title=title)
        return document

    def get_document(self, document_id: str) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFound(document_id) from None

    def has_document(self, document_id: str) -> bool:
        return document_id in self._documents

    def documents(self) -> list[Document]:
        """All documents in registration order."""
        return list(self._documents.values())

    def append_revision(
        self,
        document_id: str,
        description: str,
        *,
        on: date | None = None,
    ) -> RevisionEntry:
        """Append a revision entry; inside a transaction it is undone on rollback."""
        document = self.get_document(document_id)
        entry = self.revision_log.append(document, description, on or self._clock())
        if self._tx is not None:
            self._tx.undo.append(document._revisions.pop)
        return entry

    # =========================================================================
    # Edges
    # =========================================================================

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        type: str | RelationshipType,
        *,
        created_at: datetime | None = None,
    ) -> RelationshipEdge:
        """
        Create ``(from_id, type, to_id)`` and its mirror atomically.

        Raises:
            UnknownRelationshipKind: ``type`` is not a canonical forward label
            DocumentNotFound: Either id is unregistered
            DuplicateEdge: The exact forward edge already exists
            ValidationError: ``from_id == to_id``
        """
        kind = classify(type)
        source = self.get_document(from_id)
        target = self.get_document(to_id)
        if from_id == to_id:
            raise ValidationError(
                f"Document {from_id} cannot relate to itself",
                field="to_id",
                value=to_id,
            ).with_context(document_id=from_id, edge=format_edge(from_id, kind.value, to_id))

        edge = RelationshipEdge(
            from_id=from_id,
            to_id=to_id,
            type=kind,
            created_at=created_at or self._now(),
        )
        mirror = edge.mirror()
        if edge.key in source._edges or mirror.key in target._edges:
            raise DuplicateEdge(from_id, to_id, kind.value)

        with self.transaction() as tx:
            self._attach(source, edge)
            self._attach(target, mirror)
            tx.events.append(EdgeEvent(EdgeAction.ADDED, edge))

        logger.info("edge_added", edge=str(edge), mirror=str(mirror))
        return edge

    def remove_edge(
        self,
        from_id: str,
        to_id: str,
        type: str | RelationshipType,
    ) -> RelationshipEdge:
        """
        Remove ``(from_id, type, to_id)`` and its mirror atomically.

        Raises:
            UnknownRelationshipKind: ``type`` is not a canonical forward label
            DocumentNotFound: Either id is unregistered
            EdgeNotFound: The forward edge does not exist
        """
        kind = classify(type)
        source = self.get_document(from_id)
        target = self.get_document(to_id)

        key = (from_id, kind.value, to_id)
        edge = source._edges.get(key)
        if edge is None:
            raise EdgeNotFound(from_id, to_id, kind.value)
        mirror = edge.mirror()

        with self.transaction() as tx:
            self._detach(source, edge)
            self._detach(target, mirror)
            tx.events.append(EdgeEvent(EdgeAction.REMOVED, edge))

        logger.info("edge_removed", edge=str(edge), mirror=str(mirror))
        return edge

    def edges_of(self, document_id: str) -> frozenset[RelationshipEdge]:
        """All outgoing edges of a document, forward and mirror."""
        return self.get_document(document_id).relationships

    def has_edge(self, from_id: str, to_id: str, type: str | RelationshipType) -> bool:
        kind = classify(type)
        document = self._documents.get(from_id)
        return document is not None and (from_id, kind.value, to_id) in document._edges

    def superseded_by(self, document_id: str) -> list[str]:
        """Ids of documents that supersede ``document_id``."""
        return sorted(
            edge.to_id
            for edge in self.edges_of(document_id)
            if edge.type is ReverseRelationship.SUPERSEDED_BY
        )

    def forward_edges(self) -> list[RelationshipEdge]:
        """Every edge pair once, by its forward side, in a stable order."""
        edges = [
            edge
            for document in self._documents.values()
            for edge in document._edges.values()
            if edge.is_forward
        ]
        return sorted(edges, key=lambda e: (e.created_at, e.key))

    # =========================================================================
    # Listeners
    # =========================================================================

    def subscribe(self, listener: EdgeListener) -> None:
        """Receive an EdgeEvent for every committed edge mutation."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EdgeListener) -> None:
        self._listeners.remove(listener)

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[_Transaction]:
        """
        Group edge mutations into one all-or-nothing unit.

        Nested calls join the outermost transaction. On error the undo log
        runs in reverse and pending notifications are dropped; on success
        listeners are notified once the outermost block exits.
        """
        if self._tx is not None:
            yield self._tx
            return

        tx = _Transaction()
        self._tx = tx
        try:
            yield tx
        except BaseException:
            for undo in reversed(tx.undo):
                undo()
            logger.warning("edge_transaction_rolled_back", steps=len(tx.undo))
            raise
        finally:
            self._tx = None

        for event in tx.events:
            for listener in list(self._listeners):
                listener(event)

    def _attach(self, document: Document, edge: RelationshipEdge) -> None:
        document._edges[edge.key] = edge
        if self._tx is not None:
            self._tx.undo.append(lambda: document._edges.pop(edge.key, None))

    def _detach(self, document: Document, edge: RelationshipEdge) -> None:
        removed = document._edges.pop(edge.key)
        if self._tx is not None:
            self._tx.undo.append(lambda: document._edges.__setitem__(removed.key, removed))

    # =========================================================================
    # Invariants
    # =========================================================================

    def check_invariants(self) -> list[str]:
        """
        Re-validate every global invariant.

        Returns:
            Human-readable violations; empty when the graph is consistent
        """
        violations: list[str] = []

        for document in self._documents.values():
            for edge in document._edges.values():
                if edge.from_id != document.id:
                    violations.append(f"{document.id} holds foreign edge {edge}")
                    continue
                target = self._documents.get(edge.to_id)
                if target is None:
                    violations.append(f"{edge} points at unregistered document {edge.to_id}")
                    continue
                mirror = edge.mirror()
                if mirror.key not in target._edges:
                    violations.append(f"{edge} has no mirror {mirror}")

            revisions = document._revisions
            if not revisions or revisions[0].description != CREATED_DESCRIPTION:
                violations.append(f"{document.id} revision log does not start with '{CREATED_DESCRIPTION}'")
            created = sum(1 for e in revisions if e.description == CREATED_DESCRIPTION)
            if created > 1:
                violations.append(f"{document.id} has {created} '{CREATED_DESCRIPTION}' entries")
            for prev, cur in zip(revisions, revisions[1:]):
                if cur.date < prev.date:
                    violations.append(
                        f"{document.id} revision dates go backwards: {prev.date} -> {cur.date}"
                    )
                    break

        return violations

    def assert_invariants(self, *, session_id: str | None = None) -> None:
        """Raise InvariantViolation when ``check_invariants`` finds anything."""
        violations = self.check_invariants()
        if violations:
            raise InvariantViolation(violations, session_id=session_id)

    def to_dict(self) -> dict:
        return {"documents": [d.to_dict() for d in self._documents.values()]}

    def __repr__(self) -> str:
        return f"GraphStore(documents={len(self._documents)}, edges={len(self.forward_edges())})"


__all__ = ["EdgeEvent", "EdgeListener", "GraphStore"]
