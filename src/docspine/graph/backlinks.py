"""
Backlink Task Tracker - reverse-side follow-up work after edge mutations.

When ADR-101 gains "Depends on ADR-100", the store writes the mirror edge
immediately, but ADR-100's human-readable Related section still has to be
updated. The tracker turns every committed edge mutation into a task that
must be completed before the owning workflow session may close.

Architecture:
    ::

        GraphStore ── EdgeEvent ──▶ watch(session, store) listener
                                          │
                                          ▼
                                   record(session, edge, action)
                                          │
                     ┌────────────────────┴─────────────────────┐
                     ▼                                          ▼
            tracker._tasks[task_id]                 session.pending_backlinks
                                                     (set of task ids)

        mark_complete(task_id)  → task.completed = True, id leaves the session set
        require_drained(session) → IncompleteBacklinks when the set is non-empty
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from docspine.core.errors import BacklinkTaskNotFound, IncompleteBacklinks
from docspine.core.logging import get_logger
from docspine.core.timestamps import generate_ulid, utc_now
from docspine.graph.models import EdgeAction, RelationshipEdge
from docspine.graph.store import EdgeEvent, GraphStore

logger = get_logger(__name__)


class BacklinkOwner(Protocol):
    """What the tracker needs from a workflow session."""

    session_id: str
    pending_backlinks: set[str]


@dataclass
class BacklinkTask:
    """
    Pending update of the reverse side of one relationship.

    Attributes:
        task_id: Unique identifier
        session_id: Session whose mutation produced the task
        document_id: Document whose Related section must change
        edge: Forward edge of the mutated pair
        action: Whether the pair was added or removed
    """

    task_id: str
    session_id: str
    document_id: str
    edge: RelationshipEdge
    action: EdgeAction
    created_at: datetime = field(default_factory=utc_now)
    completed: bool = False

    @property
    def reverse_edge(self) -> RelationshipEdge:
        """The edge as seen from ``document_id``."""
        return self.edge.mirror()

    @property
    def description(self) -> str:
        verb = "add" if self.action is EdgeAction.ADDED else "remove"
        mirror = self.reverse_edge
        return f"{self.document_id}: {verb} '{mirror.type.value} {mirror.to_id}' in Related section"

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "session_id": self.session_id,
            "document_id": self.document_id,
            "edge": str(self.edge),
            "action": self.action.value,
            "completed": self.completed,
        }


class BacklinkTracker:
    """Records and drains backlink tasks per workflow session."""

    def __init__(self) -> None:
        self._tasks: dict[str, BacklinkTask] = {}
        self._owners: dict[str, BacklinkOwner] = {}

    def record(
        self,
        session: BacklinkOwner,
        edge: RelationshipEdge,
        action: EdgeAction,
    ) -> BacklinkTask:
        """Create a task for the reverse side of ``edge``."""
        forward = edge.forward()
        task = BacklinkTask(
            task_id=generate_ulid(),
            session_id=session.session_id,
            document_id=forward.to_id,
            edge=forward,
            action=action,
        )
        self._tasks[task.task_id] = task
        self._owners[task.task_id] = session
        session.pending_backlinks.add(task.task_id)
        logger.info(
            "backlink_recorded",
            session_id=session.session_id,
            task_id=task.task_id,
            document_id=task.document_id,
            action=action.value,
        )
        return task

    def get(self, task_id: str) -> BacklinkTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise BacklinkTaskNotFound(task_id) from None

    def pending_tasks(self, session_id: str) -> list[BacklinkTask]:
        """Incomplete tasks of a session in creation order."""
        return [
            task
            for task in self._tasks.values()
            if task.session_id == session_id and not task.completed
        ]

    def tasks(self, session_id: str) -> list[BacklinkTask]:
        """All tasks of a session, completed or not."""
        return [task for task in self._tasks.values() if task.session_id == session_id]

    def mark_complete(self, task_id: str) -> BacklinkTask:
        """Mark a task done. Completing a completed task is a no-op."""
        task = self.get(task_id)
        if task.completed:
            return task
        task.completed = True
        self._owners[task_id].pending_backlinks.discard(task_id)
        logger.info(
            "backlink_completed",
            session_id=task.session_id,
            task_id=task_id,
            document_id=task.document_id,
        )
        return task

    def require_drained(self, session: BacklinkOwner) -> None:
        """Raise IncompleteBacklinks while the session has pending tasks."""
        pending = [t.task_id for t in self.pending_tasks(session.session_id)]
        if pending:
            raise IncompleteBacklinks(session.session_id, pending)

    def forget(self, session_id: str) -> list[BacklinkTask]:
        """Drop every task of a session; returns the ones still pending."""
        dropped = [t for t in self._tasks.values() if t.session_id == session_id]
        for task in dropped:
            del self._tasks[task.task_id]
            del self._owners[task.task_id]
        return [t for t in dropped if not t.completed]

    @contextmanager
    def watch(self, session: BacklinkOwner, store: GraphStore) -> Iterator[None]:
        """Record a task for every edge mutation committed inside the block."""

        def _on_edge_event(event: EdgeEvent) -> None:
            self.record(session, event.edge, event.action)

        store.subscribe(_on_edge_event)
        try:
            yield
        finally:
            store.unsubscribe(_on_edge_event)


__all__ = ["BacklinkOwner", "BacklinkTask", "BacklinkTracker"]
