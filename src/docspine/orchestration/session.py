"""
Workflow session - per-task state passed explicitly to every engine call.

Manifesto:
    Everything a session discovers (observations, cards, conflicts, pending
    backlinks) lives on the session value, never in module-level state, so
    two sessions cannot leak into each other. A session is discarded when it
    closes or aborts; only the document mutations it applied survive.

Architecture:
    ::

        TRIAGE ──simple──────────────────▶ PLAN
          │                                 ▲ │
          └──complex──▶ UNDERSTAND ─────────┘ │ approve
                            ▲                 ▼
                            └──rejected──── PLAN ◀──conflicts── EXECUTE
                                                                  │
                                                                  ▼
                                                  INTEGRATE ──▶ CLOSED

        ABORTED is reachable from every phase except CLOSED.

Tags:
    workflow, session, phase, state-machine, doc-spine
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from docspine.core.errors import (
    PhaseTransitionError,
    SessionClosed,
    ValidationError,
)
from docspine.core.timestamps import generate_ulid, utc_now
from docspine.orchestration.proposals import (
    ChangeProposal,
    Conflict,
    Observation,
    ProposalStatus,
    Scope,
)


class WorkflowPhase(str, Enum):
    TRIAGE = "triage"
    UNDERSTAND = "understand"
    PLAN = "plan"
    EXECUTE = "execute"
    INTEGRATE = "integrate"
    CLOSED = "closed"
    ABORTED = "aborted"


class TaskComplexity(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


TERMINAL_PHASES = frozenset({WorkflowPhase.CLOSED, WorkflowPhase.ABORTED})

PHASE_TRANSITIONS: dict[WorkflowPhase, frozenset[WorkflowPhase]] = {
    WorkflowPhase.TRIAGE: frozenset(
        {WorkflowPhase.UNDERSTAND, WorkflowPhase.PLAN, WorkflowPhase.ABORTED}
    ),
    WorkflowPhase.UNDERSTAND: frozenset({WorkflowPhase.PLAN, WorkflowPhase.ABORTED}),
    WorkflowPhase.PLAN: frozenset(
        {WorkflowPhase.EXECUTE, WorkflowPhase.UNDERSTAND, WorkflowPhase.ABORTED}
    ),
    WorkflowPhase.EXECUTE: frozenset(
        {WorkflowPhase.INTEGRATE, WorkflowPhase.PLAN, WorkflowPhase.ABORTED}
    ),
    WorkflowPhase.INTEGRATE: frozenset({WorkflowPhase.CLOSED, WorkflowPhase.ABORTED}),
    WorkflowPhase.CLOSED: frozenset(),
    WorkflowPhase.ABORTED: frozenset(),
}


@dataclass(frozen=True)
class ChangeRequest:
    """
    An editing task entering the engine.

    Attributes:
        summary: What the operator asked for
        documents: Documents the task is expected to touch
        observations: Observations already known at triage time
        complexity: Operator hint; overrides classification when set
    """

    summary: str
    documents: tuple[str, ...] = ()
    observations: tuple[Observation, ...] = ()
    complexity: TaskComplexity | None = None


def classify_request(request: ChangeRequest, *, simple_max_proposals: int = 3) -> TaskComplexity:
    """
    Triage classification. Pure, no side effects.

    Simple when the hint says so, or when no hint is given and the request
    arrives with between one and ``simple_max_proposals`` observations all
    targeting a single document.
    """
    if request.complexity is not None:
        return request.complexity
    observations = request.observations
    if not observations or len(observations) > simple_max_proposals:
        return TaskComplexity.COMPLEX
    targets = {Scope.of(o.scope).document_id for o in observations} | set(request.documents)
    return TaskComplexity.SIMPLE if len(targets) == 1 else TaskComplexity.COMPLEX


@dataclass
class PhaseChange:
    from_phase: WorkflowPhase
    to_phase: WorkflowPhase
    at: datetime = field(default_factory=utc_now)


@dataclass
class WorkflowSession:
    """State of one editing task from triage to close."""

    request: ChangeRequest
    session_id: str = field(default_factory=generate_ulid)
    phase: WorkflowPhase = WorkflowPhase.TRIAGE
    complexity: TaskComplexity | None = None
    observations: list[Observation] = field(default_factory=list)
    proposals: list[ChangeProposal] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    pending_backlinks: set[str] = field(default_factory=set)
    plan_approved: bool = False
    mutated_documents: list[str] = field(default_factory=list)
    history: list[PhaseChange] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    ended_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def card(self, card_id: str) -> ChangeProposal:
        for card in self.proposals:
            if card.card_id == card_id:
                return card
        raise ValidationError(
            f"Session {self.session_id} has no card {card_id}",
            field="card_id",
            value=card_id,
        ).with_context(session_id=self.session_id, card_id=card_id)

    def cards(self, *statuses: ProposalStatus) -> list[ChangeProposal]:
        """Cards in plan order, optionally filtered by status."""
        if not statuses:
            return list(self.proposals)
        return [c for c in self.proposals if c.status in statuses]

    def open_cards(self) -> list[ChangeProposal]:
        return self.cards(ProposalStatus.PENDING, ProposalStatus.APPROVED)

    def require_active(self) -> None:
        if self.is_terminal:
            raise SessionClosed(self.session_id, self.phase.value)

    def require_phase(self, *phases: WorkflowPhase, target: WorkflowPhase | None = None) -> None:
        """Raise unless the session is in one of ``phases``."""
        self.require_active()
        if self.phase not in phases:
            wanted = target or phases[0]
            raise PhaseTransitionError(self.session_id, self.phase.value, wanted.value)

    def transition_to(self, target: WorkflowPhase) -> PhaseChange:
        self.require_active()
        if target not in PHASE_TRANSITIONS[self.phase]:
            raise PhaseTransitionError(self.session_id, self.phase.value, target.value)
        change = PhaseChange(self.phase, target)
        self.phase = target
        self.history.append(change)
        if target in TERMINAL_PHASES:
            self.ended_at = change.at
        return change

    def note_mutated(self, document_ids: Iterable[str]) -> None:
        for document_id in document_ids:
            if document_id not in self.mutated_documents:
                self.mutated_documents.append(document_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "summary": self.request.summary,
            "phase": self.phase.value,
            "complexity": self.complexity.value if self.complexity else None,
            "observations": len(self.observations),
            "proposals": [c.to_dict() for c in self.proposals],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "pending_backlinks": sorted(self.pending_backlinks),
            "plan_approved": self.plan_approved,
            "mutated_documents": list(self.mutated_documents),
            "history": [[h.from_phase.value, h.to_phase.value] for h in self.history],
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


__all__ = [
    "WorkflowPhase",
    "TaskComplexity",
    "TERMINAL_PHASES",
    "PHASE_TRANSITIONS",
    "ChangeRequest",
    "classify_request",
    "PhaseChange",
    "WorkflowSession",
]
