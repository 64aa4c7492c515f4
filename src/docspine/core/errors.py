"""
Structured error types for doc-spine.

Every failure the engine can report is a typed ``DocSpineError`` subclass
carrying the identifier of the offending document, edge, card, session or
backlink task, so the caller can remediate it without inspecting engine
internals.

Manifesto:
    - **Typed Error Hierarchy:** One family per failure domain
    - **Never Coerced:** Validation errors are rejected, never silently fixed
    - **Rich Context:** Errors carry identifiers for logging and remediation
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       DocSpineError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError         StructuralError        ConsistencyError │
        │  (VALIDATION)            (STRUCTURE)            (CONSISTENCY)    │
        │       │                       │                      │           │
        │  UnknownRelationshipKind DocumentNotFound     IncompleteBacklinks│
        │  InvalidFirstEntry       DuplicateDocument    InvariantViolation │
        │  DuplicateCreatedEntry   DuplicateEdge                           │
        │  NonMonotonicDate        EdgeNotFound                            │
        │  MissingJustification    StaleProposal                           │
        │  ProposalLimitExceeded                                           │
        │                                                                  │
        │  WorkflowError           StorageError                            │
        │  (WORKFLOW)              (STORAGE)                               │
        │       │                                                          │
        │  PlanRejected            ApprovalRequired                        │
        │  UnresolvedConflicts     PhaseTransitionError                    │
        │  SessionClosed           BacklinkTaskNotFound                    │
        │  CardStateError                                                  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = DocumentNotFound("ADR-404")
    >>> error.context.document_id
    'ADR-404'
    >>> error.to_dict()["category"]
    'STRUCTURE'

Guardrails:
    ❌ DON'T: Raise bare ValueError/KeyError from engine operations
    ✅ DO: Raise the matching DocSpineError subclass

    ❌ DON'T: Catch ValidationError and retry with a "fixed" value
    ✅ DO: Surface it to the caller; the closed type set prevents drift

Tags:
    error-handling, exception-hierarchy, error-context, doc-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error families used for routing and reporting."""

    VALIDATION = "VALIDATION"      # Bad input, rejected locally
    STRUCTURE = "STRUCTURE"        # Graph shape errors surfaced to callers
    CONSISTENCY = "CONSISTENCY"    # Blocks phase advancement
    WORKFLOW = "WORKFLOW"          # Expected, recoverable session errors
    STORAGE = "STORAGE"            # Persistence failures
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured identifiers attached to an error.

    Only the fields relevant to the failure are set; ``to_dict()`` drops the
    rest so log lines stay small.

    Attributes:
        document_id: Offending document
        edge: Offending edge, rendered as ``"A -[type]-> B"``
        card_id: Offending change proposal
        session_id: Workflow session the failure happened in
        task_id: Backlink task identifier
        phase: Workflow phase at the time of failure
        metadata: Additional key-value pairs
    """

    document_id: str | None = None
    edge: str | None = None
    card_id: str | None = None
    session_id: str | None = None
    task_id: str | None = None
    phase: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["document_id", "edge", "card_id", "session_id", "task_id", "phase"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocSpineError(Exception):
    """
    Base exception for all doc-spine errors.

    Subclasses set ``default_category``; none of the engine's errors are
    retried automatically, every retry is a re-entry driven by the operator.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StaleProposal(card.card_id, doc_id).with_context(session_id=sid)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


def format_edge(from_id: str, type_label: str, to_id: str) -> str:
    """Render an edge the way error messages and logs show it."""
    return f"{from_id} -[{type_label}]-> {to_id}"


# =============================================================================
# Validation errors
# =============================================================================


class ValidationError(DocSpineError):
    """
    Input rejected locally.

    Never retryable and never coerced: the caller must fix the input.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class UnknownRelationshipKind(ValidationError):
    """Candidate label is not one of the five canonical relationship types."""

    def __init__(self, label: Any, *, edge: str | None = None):
        self.label = label
        super().__init__(
            f"Unknown relationship kind: {label!r}",
            field="type",
            value=label,
            context=ErrorContext(edge=edge),
        )


class InvalidFirstEntry(ValidationError):
    """First revision entry of a document must be "Document created"."""

    def __init__(self, document_id: str, description: str):
        self.document_id = document_id
        self.description = description
        super().__init__(
            f"First revision entry of {document_id} must be 'Document created', got {description!r}",
            field="description",
            value=description,
            context=ErrorContext(document_id=document_id),
        )


class DuplicateCreatedEntry(ValidationError):
    """A second "Document created" entry on a log that already has one."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(
            f"Revision log of {document_id} already starts with 'Document created'; "
            "it cannot be appended again",
            field="description",
            value="Document created",
            context=ErrorContext(document_id=document_id),
        )


class NonMonotonicDate(ValidationError):
    """Revision entry dated before the log's last entry."""

    def __init__(self, document_id: str, date: Any, last_date: Any):
        self.document_id = document_id
        self.date = date
        self.last_date = last_date
        super().__init__(
            f"Revision date {date} for {document_id} precedes last entry date {last_date}",
            field="date",
            value=date,
            context=ErrorContext(document_id=document_id),
        )


class MissingJustification(ValidationError):
    """A change proposal is missing its evidence or technique text."""

    def __init__(self, field_name: str, *, document_id: str | None = None):
        super().__init__(
            f"Change proposal requires a non-empty {field_name}",
            field=field_name,
            context=ErrorContext(document_id=document_id),
        )


class ProposalLimitExceeded(ValidationError):
    """A simple task planned more cards than the simple-task cap allows."""

    def __init__(self, session_id: str, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(
            f"Session {session_id} is a simple task limited to {limit} proposals, got {count}",
            field="proposals",
            value=count,
            context=ErrorContext(session_id=session_id),
        )


# =============================================================================
# Structural errors
# =============================================================================


class StructuralError(DocSpineError):
    """Graph shape error surfaced to the caller of the Graph Store."""

    default_category = ErrorCategory.STRUCTURE


class DocumentNotFound(StructuralError):
    """Document id is not registered."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(
            f"Document not found: {document_id}",
            context=ErrorContext(document_id=document_id),
        )


class DuplicateDocument(StructuralError):
    """Document id is already registered."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(
            f"Document already registered: {document_id}",
            context=ErrorContext(document_id=document_id),
        )


class DuplicateEdge(StructuralError):
    """The exact forward edge already exists."""

    def __init__(self, from_id: str, to_id: str, type_label: str):
        self.from_id = from_id
        self.to_id = to_id
        self.type_label = type_label
        edge = format_edge(from_id, type_label, to_id)
        super().__init__(
            f"Edge already exists: {edge}",
            context=ErrorContext(document_id=from_id, edge=edge),
        )


class EdgeNotFound(StructuralError):
    """Edge to remove does not exist."""

    def __init__(self, from_id: str, to_id: str, type_label: str):
        self.from_id = from_id
        self.to_id = to_id
        self.type_label = type_label
        edge = format_edge(from_id, type_label, to_id)
        super().__init__(
            f"Edge not found: {edge}",
            context=ErrorContext(document_id=from_id, edge=edge),
        )


class StaleProposal(StructuralError):
    """A card's before text no longer appears in its document body."""

    def __init__(self, card_id: str, document_id: str):
        self.card_id = card_id
        self.document_id = document_id
        super().__init__(
            f"Card {card_id}: before text not found in {document_id}",
            context=ErrorContext(card_id=card_id, document_id=document_id),
        )


# =============================================================================
# Consistency errors
# =============================================================================


class ConsistencyError(DocSpineError):
    """Global consistency failure; fatal to phase advancement."""

    default_category = ErrorCategory.CONSISTENCY


class IncompleteBacklinks(ConsistencyError):
    """Session cannot close while backlink tasks are pending."""

    def __init__(self, session_id: str, pending_task_ids: list[str]):
        self.session_id = session_id
        self.pending_task_ids = list(pending_task_ids)
        super().__init__(
            f"Session {session_id} has {len(self.pending_task_ids)} pending backlink task(s): "
            f"{', '.join(self.pending_task_ids)}",
            context=ErrorContext(
                session_id=session_id,
                metadata={"pending_task_ids": self.pending_task_ids},
            ),
        )


class InvariantViolation(ConsistencyError):
    """Global graph or revision-log invariant does not hold."""

    def __init__(self, violations: list[str], *, session_id: str | None = None):
        self.violations = list(violations)
        super().__init__(
            f"{len(self.violations)} invariant violation(s): {'; '.join(self.violations)}",
            context=ErrorContext(
                session_id=session_id,
                metadata={"violations": self.violations},
            ),
        )


# =============================================================================
# Workflow errors
# =============================================================================


class WorkflowError(DocSpineError):
    """Expected, recoverable workflow-session error."""

    default_category = ErrorCategory.WORKFLOW


class PlanRejected(WorkflowError):
    """The approval channel declined the plan; the session returns to Understand."""

    def __init__(self, session_id: str, reason: str | None = None):
        self.session_id = session_id
        self.reason = reason
        message = f"Plan rejected for session {session_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, context=ErrorContext(session_id=session_id, phase="plan"))


class ApprovalRequired(WorkflowError):
    """Execute attempted on a session whose plan was never approved."""

    def __init__(self, session_id: str, phase: str):
        self.session_id = session_id
        self.phase = phase
        super().__init__(
            f"Session {session_id} cannot execute: plan not approved (phase={phase})",
            context=ErrorContext(session_id=session_id, phase=phase),
        )


class UnresolvedConflicts(WorkflowError):
    """Two approved cards overlap; neither is applied until re-planned."""

    def __init__(self, session_id: str, pairs: list[tuple[str, str]]):
        self.session_id = session_id
        self.pairs = list(pairs)
        rendered = ", ".join(f"{a}<->{b}" for a, b in self.pairs)
        super().__init__(
            f"Session {session_id} has unresolved conflicting cards: {rendered}",
            context=ErrorContext(
                session_id=session_id,
                phase="execute",
                metadata={"conflicts": [list(p) for p in self.pairs]},
            ),
        )


class PhaseTransitionError(WorkflowError):
    """Operation not allowed in the session's current phase."""

    def __init__(self, session_id: str, current: str, target: str):
        self.session_id = session_id
        self.current = current
        self.target = target
        super().__init__(
            f"Session {session_id} cannot move from {current} to {target}",
            context=ErrorContext(session_id=session_id, phase=current),
        )


class CardStateError(WorkflowError):
    """Change proposal moved through an invalid status transition."""

    def __init__(self, card_id: str, current: str, target: str):
        self.card_id = card_id
        self.current = current
        self.target = target
        super().__init__(
            f"Card {card_id} cannot move from {current} to {target}",
            context=ErrorContext(card_id=card_id),
        )


class SessionClosed(WorkflowError):
    """Operation attempted on a Closed or Aborted session."""

    def __init__(self, session_id: str, phase: str):
        self.session_id = session_id
        self.phase = phase
        super().__init__(
            f"Session {session_id} is {phase}",
            context=ErrorContext(session_id=session_id, phase=phase),
        )


class BacklinkTaskNotFound(WorkflowError):
    """Backlink task id is unknown to the tracker."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            f"Backlink task not found: {task_id}",
            context=ErrorContext(task_id=task_id),
        )


# =============================================================================
# Storage errors
# =============================================================================


class StorageError(DocSpineError):
    """Persistence layer failure."""

    default_category = ErrorCategory.STORAGE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocSpineError",
    "format_edge",
    # Validation
    "ValidationError",
    "UnknownRelationshipKind",
    "InvalidFirstEntry",
    "DuplicateCreatedEntry",
    "NonMonotonicDate",
    "MissingJustification",
    "ProposalLimitExceeded",
    # Structural
    "StructuralError",
    "DocumentNotFound",
    "DuplicateDocument",
    "DuplicateEdge",
    "EdgeNotFound",
    "StaleProposal",
    # Consistency
    "ConsistencyError",
    "IncompleteBacklinks",
    "InvariantViolation",
    # Workflow
    "WorkflowError",
    "PlanRejected",
    "ApprovalRequired",
    "UnresolvedConflicts",
    "PhaseTransitionError",
    "CardStateError",
    "SessionClosed",
    "BacklinkTaskNotFound",
    # Storage
    "StorageError",
]
