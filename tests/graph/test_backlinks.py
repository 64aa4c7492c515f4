"""Tests for the backlink task tracker."""

from dataclasses import dataclass, field

import pytest

from docspine.core.errors import BacklinkTaskNotFound, DocumentNotFound, IncompleteBacklinks
from docspine.graph.backlinks import BacklinkTracker
from docspine.graph.models import EdgeAction


@dataclass
class Owner:
    session_id: str
    pending_backlinks: set[str] = field(default_factory=set)


@pytest.fixture
def owner() -> Owner:
    return Owner("session-1")


class TestRecord:
    def test_targets_reverse_side(self, adr_store, tracker, owner):
        edge = adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        task = tracker.record(owner, edge, EdgeAction.ADDED)
        assert task.document_id == "ADR-100"
        assert task.reverse_edge.key == ("ADR-100", "Required by", "ADR-101")
        assert owner.pending_backlinks == {task.task_id}
        assert "ADR-100: add 'Required by ADR-101'" in task.description

    def test_mirror_edge_normalized_to_forward(self, adr_store, tracker, owner):
        edge = adr_store.add_edge("ADR-101", "ADR-100", "Extends")
        task = tracker.record(owner, edge.mirror(), EdgeAction.REMOVED)
        assert task.edge == edge
        assert task.document_id == "ADR-100"
        assert "remove" in task.description


class TestWatch:
    def test_records_committed_mutations(self, adr_store, tracker, owner):
        with tracker.watch(owner, adr_store):
            adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
            adr_store.remove_edge("ADR-101", "ADR-100", "Depends on")
        actions = [t.action for t in tracker.pending_tasks(owner.session_id)]
        assert actions == [EdgeAction.ADDED, EdgeAction.REMOVED]
        assert len(owner.pending_backlinks) == 2

    def test_nothing_for_failed_mutation(self, adr_store, tracker, owner):
        with tracker.watch(owner, adr_store):
            with pytest.raises(DocumentNotFound):
                adr_store.add_edge("ADR-101", "ADR-999", "Depends on")
        assert tracker.pending_tasks(owner.session_id) == []

    def test_unsubscribes_on_exit(self, adr_store, tracker, owner):
        with tracker.watch(owner, adr_store):
            pass
        adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        assert tracker.tasks(owner.session_id) == []

    def test_sessions_are_isolated(self, adr_store, tracker):
        first, second = Owner("s-1"), Owner("s-2")
        with tracker.watch(first, adr_store):
            adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        assert len(tracker.pending_tasks("s-1")) == 1
        assert tracker.pending_tasks("s-2") == []
        assert second.pending_backlinks == set()


class TestCompletion:
    def test_mark_complete_drains(self, adr_store, tracker, owner):
        edge = adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        task = tracker.record(owner, edge, EdgeAction.ADDED)

        with pytest.raises(IncompleteBacklinks) as exc:
            tracker.require_drained(owner)
        assert exc.value.pending_task_ids == [task.task_id]

        tracker.mark_complete(task.task_id)
        assert owner.pending_backlinks == set()
        assert tracker.pending_tasks(owner.session_id) == []
        tracker.require_drained(owner)

    def test_mark_complete_idempotent(self, adr_store, tracker, owner):
        edge = adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        task = tracker.record(owner, edge, EdgeAction.ADDED)
        tracker.mark_complete(task.task_id)
        assert tracker.mark_complete(task.task_id).completed is True

    def test_unknown_task(self, tracker):
        with pytest.raises(BacklinkTaskNotFound):
            tracker.mark_complete("nope")

    def test_forget_returns_pending(self, adr_store, tracker, owner):
        edge = adr_store.add_edge("ADR-101", "ADR-100", "Depends on")
        done = tracker.record(owner, edge, EdgeAction.ADDED)
        open_task = tracker.record(owner, edge, EdgeAction.REMOVED)
        tracker.mark_complete(done.task_id)

        assert tracker.forget(owner.session_id) == [open_task]
        assert tracker.tasks(owner.session_id) == []
