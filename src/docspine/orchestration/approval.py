"""
Approval channel - the one human-in-the-loop gate of a session.

The engine presents the planned cards (and any conflicts between them) and
blocks until the channel returns a decision. There is no timeout and no
auto-advance: only an APPROVE decision moves a session to Execute.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from docspine.core.errors import WorkflowError
from docspine.orchestration.proposals import ChangeProposal, Conflict


class ApprovalVerdict(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    AMEND = "amend"


@dataclass(frozen=True)
class ApprovalDecision:
    """
    Outcome of presenting a plan.

    ``card_ids`` selects the cards to approve (empty means every pending
    card) for APPROVE, and the cards to drop for AMEND.
    """

    verdict: ApprovalVerdict
    card_ids: tuple[str, ...] = ()
    reason: str | None = None

    @classmethod
    def approve(cls, *card_ids: str) -> ApprovalDecision:
        return cls(ApprovalVerdict.APPROVE, card_ids)

    @classmethod
    def reject(cls, reason: str | None = None) -> ApprovalDecision:
        return cls(ApprovalVerdict.REJECT, reason=reason)

    @classmethod
    def amend(cls, *card_ids: str, reason: str | None = None) -> ApprovalDecision:
        return cls(ApprovalVerdict.AMEND, card_ids, reason)

    def to_dict(self) -> dict[str, Any]:
        return {"verdict": self.verdict.value, "card_ids": list(self.card_ids), "reason": self.reason}


@runtime_checkable
class ApprovalChannel(Protocol):
    """Presents a plan and blocks until a decision is made."""

    def present_plan(
        self,
        cards: Sequence[ChangeProposal],
        conflicts: Sequence[Conflict],
    ) -> ApprovalDecision: ...


class ScriptedApprovalChannel:
    """Replays a fixed list of decisions; records every plan it was shown."""

    def __init__(self, decisions: Iterable[ApprovalDecision]) -> None:
        self._decisions = deque(decisions)
        self.presented: list[tuple[list[str], list[tuple[str, str]]]] = []

    def present_plan(
        self,
        cards: Sequence[ChangeProposal],
        conflicts: Sequence[Conflict],
    ) -> ApprovalDecision:
        self.presented.append(([c.card_id for c in cards], [c.pair for c in conflicts]))
        if not self._decisions:
            raise WorkflowError("No scripted approval decision left")
        return self._decisions.popleft()


class CallbackApprovalChannel:
    """Delegates the decision to a callable, e.g. an interactive prompt."""

    def __init__(
        self,
        callback: Callable[[Sequence[ChangeProposal], Sequence[Conflict]], ApprovalDecision],
    ) -> None:
        self._callback = callback

    def present_plan(
        self,
        cards: Sequence[ChangeProposal],
        conflicts: Sequence[Conflict],
    ) -> ApprovalDecision:
        return self._callback(cards, conflicts)


__all__ = [
    "ApprovalVerdict",
    "ApprovalDecision",
    "ApprovalChannel",
    "ScriptedApprovalChannel",
    "CallbackApprovalChannel",
]
