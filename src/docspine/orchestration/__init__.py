"""
Phased, human-gated revision workflow.

Modules:
    content    Document body stores (in-memory, file-backed)
    proposals  Change proposal cards, builder, conflict detection
    approval   Approval channel protocol and implementations
    session    WorkflowSession, phases, triage classification
    engine     WorkflowEngine driving sessions through the phases
"""

from docspine.orchestration.approval import (
    ApprovalChannel,
    ApprovalDecision,
    ApprovalVerdict,
    CallbackApprovalChannel,
    ScriptedApprovalChannel,
)
from docspine.orchestration.content import (
    ContentStore,
    FileContentStore,
    InMemoryContentStore,
    content_store_from_settings,
)
from docspine.orchestration.engine import (
    AbortRecord,
    CardFailure,
    ExecutionReport,
    WorkflowEngine,
)
from docspine.orchestration.proposals import (
    ChangeProposal,
    Conflict,
    EdgeChange,
    Observation,
    ProposalBuilder,
    ProposalStatus,
    Scope,
)
from docspine.orchestration.session import (
    ChangeRequest,
    TaskComplexity,
    WorkflowPhase,
    WorkflowSession,
    classify_request,
)

__all__ = [
    # Content
    "ContentStore",
    "InMemoryContentStore",
    "FileContentStore",
    "content_store_from_settings",
    # Proposals
    "ProposalStatus",
    "Scope",
    "EdgeChange",
    "Observation",
    "ChangeProposal",
    "Conflict",
    "ProposalBuilder",
    # Approval
    "ApprovalVerdict",
    "ApprovalDecision",
    "ApprovalChannel",
    "ScriptedApprovalChannel",
    "CallbackApprovalChannel",
    # Session
    "WorkflowPhase",
    "TaskComplexity",
    "ChangeRequest",
    "WorkflowSession",
    "classify_request",
    # Engine
    "WorkflowEngine",
    "ExecutionReport",
    "CardFailure",
    "AbortRecord",
]
