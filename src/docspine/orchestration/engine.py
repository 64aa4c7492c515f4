"""
Workflow Engine - phased, human-gated revision of documents.

Manifesto:
    Edits to linked documents are only safe when someone has looked at them
    first. The engine sequences one editing task through five phases and
    refuses to apply anything the approver has not seen and accepted. The
    approval gate blocks for as long as it takes; nothing auto-advances.

    - **Gated:** Only an explicit approve() moves a session to Execute
    - **Conflict-aware:** Overlapping cards are never applied together
    - **Partial:** One failing card does not stop the rest of the batch
    - **Accountable:** Aborted sessions leave an audit record of what stayed applied

Architecture:
    ::

        run(request)
          │
          ├── start()              → WorkflowSession (TRIAGE)
          ├── triage()             → SIMPLE: PLAN      COMPLEX: UNDERSTAND
          ├── record_observations()  (UNDERSTAND only)
          ├── plan()               → cards + pairwise conflicts        (PLAN)
          ├── request_approval()   → ApprovalChannel.present_plan()    (blocks)
          │        APPROVE → approve()  → EXECUTE
          │        REJECT  → reject()   → UNDERSTAND, raises PlanRejected
          │        AMEND   → amend()    → stays in PLAN
          ├── execute()            → per card:
          │        with tracker.watch(session, store), store.transaction():
          │            edge changes → revision entries → content write
          │        failure → card keeps APPROVED + failure, batch continues
          ├── complete_backlink()  → reverse-side revision entry
          └── integrate()          → backlinks drained + invariants hold → CLOSED

        abort() from any non-terminal phase → AbortRecord in audit_trail

Examples:
    >>> engine = WorkflowEngine(store, approval=ScriptedApprovalChannel([ApprovalDecision.approve()]))
    >>> session = engine.run(ChangeRequest("Fix rationale"), observations)
    >>> session.phase
    <WorkflowPhase.CLOSED: 'closed'>

Tags:
    workflow, engine, state-machine, approval-gate, human-in-the-loop, doc-spine
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NoReturn

from docspine.core.errors import (
    ApprovalRequired,
    BacklinkTaskNotFound,
    ConsistencyError,
    DocSpineError,
    PlanRejected,
    ProposalLimitExceeded,
    StaleProposal,
    UnresolvedConflicts,
    ValidationError,
    WorkflowError,
)
from docspine.core.logging import LogContext, get_logger
from docspine.core.settings import EngineSettings, get_settings
from docspine.core.timestamps import utc_now
from docspine.graph.backlinks import BacklinkTask, BacklinkTracker
from docspine.graph.models import EdgeAction
from docspine.graph.store import GraphStore
from docspine.orchestration.approval import (
    ApprovalChannel,
    ApprovalDecision,
    ApprovalVerdict,
)
from docspine.orchestration.content import ContentStore, content_store_from_settings
from docspine.orchestration.proposals import (
    ChangeProposal,
    Observation,
    ProposalBuilder,
    ProposalStatus,
)
from docspine.orchestration.session import (
    ChangeRequest,
    TaskComplexity,
    WorkflowPhase,
    WorkflowSession,
    classify_request,
)

logger = get_logger(__name__)

BacklinkHandler = Callable[[BacklinkTask], None]


@dataclass
class CardFailure:
    card_id: str
    document_id: str
    error: DocSpineError

    def to_dict(self) -> dict[str, Any]:
        return {"card_id": self.card_id, "document_id": self.document_id, "error": self.error.to_dict()}


@dataclass
class ExecutionReport:
    """Outcome of one Execute phase."""

    session_id: str
    applied: list[str] = field(default_factory=list)
    failed: list[CardFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "applied": list(self.applied),
            "failed": [f.to_dict() for f in self.failed],
        }


@dataclass(frozen=True)
class AbortRecord:
    """
    Audit entry for a cancelled session.

    Applied mutations are not reverted; this record is what an operator uses
    to find and revert them by hand. Cards that were attempted in Execute and
    failed are listed in ``failed_card_ids``, apart from the never-attempted
    cards in ``discarded_card_ids``.
    """

    session_id: str
    phase: WorkflowPhase
    reason: str | None
    applied_card_ids: tuple[str, ...]
    mutated_document_ids: tuple[str, ...]
    discarded_card_ids: tuple[str, ...]
    pending_backlink_task_ids: tuple[str, ...]
    failed_card_ids: tuple[str, ...] = ()
    aborted_at: datetime = field(default_factory=utc_now)

    @property
    def left_mutations(self) -> bool:
        return bool(self.applied_card_ids or self.mutated_document_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "reason": self.reason,
            "applied_card_ids": list(self.applied_card_ids),
            "mutated_document_ids": list(self.mutated_document_ids),
            "discarded_card_ids": list(self.discarded_card_ids),
            "failed_card_ids": list(self.failed_card_ids),
            "pending_backlink_task_ids": list(self.pending_backlink_task_ids),
            "aborted_at": self.aborted_at.isoformat(),
        }


class WorkflowEngine:
    """
    Drives workflow sessions against one GraphStore.

    Args:
        store: Graph the sessions mutate
        approval: Channel consulted by ``request_approval`` and ``run``
        content: Document bodies; chosen from ``content_dir`` when omitted
        tracker: Backlink task tracker shared by all sessions
        builder: Card builder; defaults to one reading ``content``
        settings: Engine settings; process-wide settings when omitted
    """

    def __init__(
        self,
        store: GraphStore,
        *,
        approval: ApprovalChannel | None = None,
        content: ContentStore | None = None,
        tracker: BacklinkTracker | None = None,
        builder: ProposalBuilder | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.store = store
        self.approval = approval
        self.settings = settings or get_settings()
        self.content = content if content is not None else content_store_from_settings(self.settings)
        self.tracker = tracker or BacklinkTracker()
        self.builder = builder or ProposalBuilder(self.content)
        self.audit_trail: list[AbortRecord] = []
        self._sessions: dict[str, WorkflowSession] = {}

    # =========================================================================
    # Sessions
    # =========================================================================

    def start(self, request: ChangeRequest) -> WorkflowSession:
        session = WorkflowSession(request=request)
        self._sessions[session.session_id] = session
        logger.info("session_started", session_id=session.session_id, summary=request.summary)
        return session

    def active_sessions(self) -> list[WorkflowSession]:
        return list(self._sessions.values())

    def classify_request(self, request: ChangeRequest) -> TaskComplexity:
        return classify_request(request, simple_max_proposals=self.settings.simple_max_proposals)

    def _transition(self, session: WorkflowSession, target: WorkflowPhase) -> None:
        change = session.transition_to(target)
        logger.info(
            "phase_transition",
            session_id=session.session_id,
            from_phase=change.from_phase.value,
            to_phase=change.to_phase.value,
        )

    def _discard(self, session: WorkflowSession) -> None:
        self.tracker.forget(session.session_id)
        self._sessions.pop(session.session_id, None)

    # =========================================================================
    # Triage / Understand
    # =========================================================================

    def triage(self, session: WorkflowSession) -> TaskComplexity:
        """Classify the task; SIMPLE goes straight to Plan."""
        session.require_phase(WorkflowPhase.TRIAGE)
        complexity = self.classify_request(session.request)
        session.complexity = complexity
        session.observations.extend(session.request.observations)
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.TRIAGE.value):
            logger.info("session_triaged", complexity=complexity.value)
            if complexity is TaskComplexity.SIMPLE:
                self._transition(session, WorkflowPhase.PLAN)
            else:
                self._transition(session, WorkflowPhase.UNDERSTAND)
        return complexity

    def record_observations(
        self,
        session: WorkflowSession,
        observations: Iterable[Observation],
        *,
        replace: bool = False,
    ) -> list[Observation]:
        """Collect problem evidence. No graph or content mutation happens here."""
        session.require_phase(WorkflowPhase.UNDERSTAND)
        if replace:
            session.observations.clear()
        added = list(observations)
        session.observations.extend(added)
        logger.info(
            "observations_recorded",
            session_id=session.session_id,
            added=len(added),
            total=len(session.observations),
        )
        return list(session.observations)

    # =========================================================================
    # Plan
    # =========================================================================

    def plan(self, session: WorkflowSession) -> list[ChangeProposal]:
        """
        Build one card per observation and detect conflicts between them.

        Re-planning from Plan replaces the current cards.

        Raises:
            ValidationError: No observations recorded
            ProposalLimitExceeded: Simple session with too many observations
            MissingJustification: An observation lacks evidence or technique
        """
        session.require_phase(WorkflowPhase.UNDERSTAND, WorkflowPhase.PLAN, target=WorkflowPhase.PLAN)
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.PLAN.value):
            if not session.observations:
                raise ValidationError(
                    f"Session {session.session_id} has no observations to plan from",
                    field="observations",
                ).with_context(session_id=session.session_id)

            limit = self.settings.simple_max_proposals
            if session.complexity is TaskComplexity.SIMPLE and len(session.observations) > limit:
                raise ProposalLimitExceeded(session.session_id, len(session.observations), limit)

            cards = [self.builder.from_observation(o) for o in session.observations]
            session.proposals = cards
            session.conflicts = self.builder.detect_conflicts(cards)
            session.plan_approved = False

            if session.phase is WorkflowPhase.UNDERSTAND:
                self._transition(session, WorkflowPhase.PLAN)
            logger.info("plan_built", cards=len(cards), conflicts=len(session.conflicts))
        return cards

    def request_approval(self, session: WorkflowSession) -> ApprovalDecision:
        """Present the plan and apply the channel's decision. Blocks on the channel."""
        session.require_phase(WorkflowPhase.PLAN)
        if self.approval is None:
            raise WorkflowError("No approval channel configured").with_context(
                session_id=session.session_id
            )

        cards = session.cards(ProposalStatus.PENDING)
        logger.info(
            "plan_presented",
            session_id=session.session_id,
            cards=[c.card_id for c in cards],
            conflicts=[list(c.pair) for c in session.conflicts],
        )
        decision = self.approval.present_plan(cards, list(session.conflicts))

        match decision.verdict:
            case ApprovalVerdict.APPROVE:
                self.approve(session, decision.card_ids or None)
            case ApprovalVerdict.REJECT:
                self.reject(session, decision.reason)
            case ApprovalVerdict.AMEND:
                self.amend(session, decision.card_ids, reason=decision.reason)
        return decision

    def approve(self, session: WorkflowSession, card_ids: Iterable[str] | None = None) -> list[ChangeProposal]:
        """
        The approval signal. Approves the named cards (all pending ones by
        default) and moves the session to Execute.

        Conflicts are not checked here; Execute refuses conflicting approvals.
        """
        session.require_phase(WorkflowPhase.PLAN, target=WorkflowPhase.EXECUTE)
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.PLAN.value):
            if card_ids is None:
                selected = session.cards(ProposalStatus.PENDING)
            else:
                selected = [session.card(card_id) for card_id in card_ids]
            for card in selected:
                card.approve()
            session.plan_approved = True

            if session.conflicts:
                logger.warning(
                    "plan_approved_with_conflicts",
                    conflicts=[list(c.pair) for c in session.conflicts],
                )
            logger.info("plan_approved", cards=[c.card_id for c in selected])
            self._transition(session, WorkflowPhase.EXECUTE)
        return selected

    def reject(self, session: WorkflowSession, reason: str | None = None) -> NoReturn:
        """Decline the plan: open cards are rejected and the session returns to Understand."""
        session.require_phase(WorkflowPhase.PLAN, target=WorkflowPhase.UNDERSTAND)
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.PLAN.value):
            for card in session.open_cards():
                card.reject(reason or "plan rejected")
            session.conflicts = []
            session.plan_approved = False
            logger.info("plan_rejected", reason=reason)
            self._transition(session, WorkflowPhase.UNDERSTAND)
        raise PlanRejected(session.session_id, reason)

    def amend(
        self,
        session: WorkflowSession,
        card_ids: Iterable[str],
        *,
        reason: str | None = None,
    ) -> list[ChangeProposal]:
        """Drop the named cards and stay in Plan awaiting a fresh decision."""
        session.require_phase(WorkflowPhase.PLAN)
        dropped = [session.card(card_id) for card_id in card_ids]
        for card in dropped:
            card.reject(reason or "amended")
        remaining = session.open_cards()
        session.conflicts = self.builder.detect_conflicts(remaining)
        logger.info(
            "plan_amended",
            session_id=session.session_id,
            dropped=[c.card_id for c in dropped],
            remaining=len(remaining),
        )
        return remaining

    def resolve_conflict(self, session: WorkflowSession, keep_card_id: str) -> list[str]:
        """Keep one card and reject every open card it conflicts with."""
        session.require_phase(WorkflowPhase.PLAN)
        keep = session.card(keep_card_id)
        rejected = []
        for conflict in session.conflicts:
            if not conflict.involves(keep.card_id):
                continue
            other = session.card(conflict.other(keep.card_id))
            if other.status in (ProposalStatus.PENDING, ProposalStatus.APPROVED):
                other.reject(f"conflicts with {keep.card_id}")
                rejected.append(other.card_id)
        session.conflicts = self.builder.detect_conflicts(session.open_cards())
        logger.info(
            "conflict_resolved",
            session_id=session.session_id,
            kept=keep.card_id,
            rejected=rejected,
            remaining_conflicts=len(session.conflicts),
        )
        return rejected

    # =========================================================================
    # Execute
    # =========================================================================

    def execute(self, session: WorkflowSession) -> ExecutionReport:
        """
        Apply every APPROVED card.

        Raises:
            SessionClosed: Session is Closed or Aborted
            ApprovalRequired: The plan was never approved
            UnresolvedConflicts: Two approved cards overlap; approvals are
                withdrawn, the session returns to Plan and nothing is applied
        """
        session.require_active()
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.EXECUTE.value):
            if session.phase is not WorkflowPhase.EXECUTE or not session.plan_approved:
                raise ApprovalRequired(session.session_id, session.phase.value)

            approved = session.cards(ProposalStatus.APPROVED)
            conflicts = self.builder.detect_conflicts(approved)
            if conflicts:
                for card in approved:
                    card.revert()
                session.plan_approved = False
                session.conflicts = self.builder.detect_conflicts(session.open_cards())
                logger.warning("execute_refused", conflicts=[list(c.pair) for c in conflicts])
                self._transition(session, WorkflowPhase.PLAN)
                raise UnresolvedConflicts(session.session_id, [c.pair for c in conflicts])

            report = ExecutionReport(session.session_id)
            for card in approved:
                try:
                    mutated = self._apply_card(session, card)
                except DocSpineError as e:
                    e.with_context(card_id=card.card_id, session_id=session.session_id)
                    card.record_failure(e)
                    report.failed.append(CardFailure(card.card_id, card.document_id, e))
                    logger.warning(
                        "card_failed",
                        card_id=card.card_id,
                        document_id=card.document_id,
                        error=e.to_dict(),
                    )
                    continue
                report.applied.append(card.card_id)
                session.note_mutated(mutated)

            logger.info("execution_finished", applied=len(report.applied), failed=len(report.failed))
            self._transition(session, WorkflowPhase.INTEGRATE)
        return report

    def _apply_card(self, session: WorkflowSession, card: ChangeProposal) -> list[str]:
        """Apply one card as a unit; returns the documents given a revision entry."""
        document_id = card.document_id
        self.store.get_document(document_id)

        new_body = None
        if card.changes_text:
            body = self.content.read(document_id)
            if card.before_text:
                if card.before_text not in body:
                    raise StaleProposal(card.card_id, document_id)
                new_body = body.replace(card.before_text, card.after_text, 1)
            else:
                new_body = body + card.after_text

        mutated = [document_id]
        for change in card.edge_changes:
            if change.from_id not in mutated:
                mutated.append(change.from_id)

        with self.tracker.watch(session, self.store), self.store.transaction():
            for change in card.edge_changes:
                change.apply(self.store)
            for mutated_id in mutated:
                self.store.append_revision(mutated_id, card.revision_description)
            if new_body is not None:
                self.content.write(document_id, new_body).unwrap()

        card.mark_applied()
        logger.info("card_applied", card_id=card.card_id, document_id=document_id, mutated=mutated)
        return mutated

    # =========================================================================
    # Integrate
    # =========================================================================

    def complete_backlink(self, session: WorkflowSession, task_id: str) -> BacklinkTask:
        """Record the reverse-side update of one backlink task."""
        session.require_phase(WorkflowPhase.EXECUTE, WorkflowPhase.INTEGRATE, target=WorkflowPhase.INTEGRATE)
        task = self.tracker.get(task_id)
        if task.session_id != session.session_id:
            raise BacklinkTaskNotFound(task_id).with_context(session_id=session.session_id)
        if task.completed:
            return task

        mirror = task.reverse_edge
        verb = "" if task.action is EdgeAction.ADDED else "removed "
        self.store.append_revision(
            task.document_id,
            f"Related section updated: {verb}{mirror.type.value} {mirror.to_id}",
        )
        self.tracker.mark_complete(task_id)
        session.note_mutated([task.document_id])
        return task

    def integrate(
        self,
        session: WorkflowSession,
        *,
        handle_backlink: BacklinkHandler | None = None,
    ) -> WorkflowSession:
        """
        Close the session once backlinks are drained and invariants hold.

        ``handle_backlink`` is called for each pending task before it is
        completed. On failure the session stays in Integrate for a retry.

        Raises:
            IncompleteBacklinks: Backlink tasks still pending
            InvariantViolation: Global graph invariants do not hold
        """
        session.require_phase(WorkflowPhase.INTEGRATE)
        with LogContext(session_id=session.session_id, phase=WorkflowPhase.INTEGRATE.value):
            if handle_backlink is not None:
                for task in self.tracker.pending_tasks(session.session_id):
                    handle_backlink(task)
                    self.complete_backlink(session, task.task_id)

            try:
                self.tracker.require_drained(session)
                self.store.assert_invariants(session_id=session.session_id)
            except ConsistencyError as e:
                logger.error("integrate_failed", error=e.to_dict())
                raise

            self._transition(session, WorkflowPhase.CLOSED)
            self._discard(session)
            logger.info("session_closed", mutated_documents=list(session.mutated_documents))
        return session

    # =========================================================================
    # Abort
    # =========================================================================

    def abort(self, session: WorkflowSession, reason: str | None = None) -> AbortRecord:
        """
        Cancel a session. Open cards are discarded; applied mutations stay and
        are recorded in ``audit_trail``.
        """
        session.require_active()
        phase = session.phase
        applied = tuple(c.card_id for c in session.cards(ProposalStatus.APPLIED))
        discarded = []
        failed = []
        for card in session.open_cards():
            (failed if card.failure else discarded).append(card.card_id)
            card.reject(reason or "session aborted")
        pending = tuple(t.task_id for t in self.tracker.pending_tasks(session.session_id))

        self._transition(session, WorkflowPhase.ABORTED)
        record = AbortRecord(
            session_id=session.session_id,
            phase=phase,
            reason=reason,
            applied_card_ids=applied,
            mutated_document_ids=tuple(session.mutated_documents),
            discarded_card_ids=tuple(discarded),
            failed_card_ids=tuple(failed),
            pending_backlink_task_ids=pending,
        )
        self.audit_trail.append(record)
        if record.left_mutations:
            logger.warning("applied_mutations_left_after_abort", **record.to_dict())
        logger.info("session_aborted", session_id=session.session_id, phase=phase.value, reason=reason)
        self._discard(session)
        return record

    # =========================================================================
    # Driver
    # =========================================================================

    def run(
        self,
        request: ChangeRequest,
        observations: Iterable[Observation] | None = None,
        *,
        handle_backlink: BacklinkHandler | None = None,
    ) -> WorkflowSession:
        """
        Drive one session from triage to close through the approval channel.

        PlanRejected, UnresolvedConflicts and consistency errors propagate
        with the session left in the phase the operator resumes from.
        """
        session = self.start(request)
        self.triage(session)
        if session.phase is WorkflowPhase.UNDERSTAND:
            self.record_observations(session, observations or ())
        elif observations:
            session.observations.extend(observations)

        self.plan(session)
        while session.phase is WorkflowPhase.PLAN:
            self.request_approval(session)

        self.execute(session)
        return self.integrate(session, handle_backlink=handle_backlink)


__all__ = [
    "WorkflowEngine",
    "ExecutionReport",
    "CardFailure",
    "AbortRecord",
    "BacklinkHandler",
]
