"""doc-spine core -- errors, logging, settings and storage primitives.

Architecture::

    errors.py        Structured error hierarchy (DocSpineError and families)
    logging.py       structlog configuration, LogContext
    settings.py      EngineSettings (pydantic-settings, DOCSPINE_ prefix)
    timestamps.py    ULID generation + UTC helpers (stdlib-only)
    result.py        Result[T] envelope (Ok / Err)
    protocols.py     Connection protocol
    sqlite_conn.py   sqlite3 adapter for the Connection protocol
    repository.py    BaseRepository with query/insert/transaction helpers
"""

from docspine.core.errors import (
    ApprovalRequired,
    BacklinkTaskNotFound,
    CardStateError,
    ConsistencyError,
    DocSpineError,
    DocumentNotFound,
    DuplicateDocument,
    DuplicateEdge,
    EdgeNotFound,
    ErrorCategory,
    ErrorContext,
    IncompleteBacklinks,
    InvalidFirstEntry,
    DuplicateCreatedEntry,
    InvariantViolation,
    MissingJustification,
    NonMonotonicDate,
    PhaseTransitionError,
    PlanRejected,
    ProposalLimitExceeded,
    SessionClosed,
    StaleProposal,
    StorageError,
    StructuralError,
    UnknownRelationshipKind,
    UnresolvedConflicts,
    ValidationError,
    WorkflowError,
)
from docspine.core.logging import (
    LogContext,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from docspine.core.result import Err, Ok, Result
from docspine.core.timestamps import generate_ulid, utc_now, utc_today

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocSpineError",
    "ValidationError",
    "UnknownRelationshipKind",
    "InvalidFirstEntry",
    "DuplicateCreatedEntry",
    "NonMonotonicDate",
    "MissingJustification",
    "ProposalLimitExceeded",
    "StructuralError",
    "DocumentNotFound",
    "DuplicateDocument",
    "DuplicateEdge",
    "EdgeNotFound",
    "StaleProposal",
    "ConsistencyError",
    "IncompleteBacklinks",
    "InvariantViolation",
    "WorkflowError",
    "PlanRejected",
    "ApprovalRequired",
    "UnresolvedConflicts",
    "PhaseTransitionError",
    "CardStateError",
    "SessionClosed",
    "BacklinkTaskNotFound",
    "StorageError",
    "LogContext",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "Ok",
    "Err",
    "Result",
    "generate_ulid",
    "utc_now",
    "utc_today",
]
