"""Tests for approval decisions and channels."""

import pytest

from docspine.core.errors import WorkflowError
from docspine.orchestration.approval import (
    ApprovalChannel,
    ApprovalDecision,
    ApprovalVerdict,
    CallbackApprovalChannel,
    ScriptedApprovalChannel,
)


class TestApprovalDecision:
    def test_approve_all(self):
        decision = ApprovalDecision.approve()
        assert decision.verdict is ApprovalVerdict.APPROVE
        assert decision.card_ids == ()

    def test_amend(self):
        decision = ApprovalDecision.amend("c1", reason="too broad")
        assert decision.to_dict() == {"verdict": "amend", "card_ids": ["c1"], "reason": "too broad"}


class TestScriptedApprovalChannel:
    def test_replays_in_order_and_records(self, builder):
        card = builder.build_card("e", "t", "PostgreSQL 12", "PostgreSQL 16", scope="ADR-100")
        channel = ScriptedApprovalChannel([ApprovalDecision.reject("no"), ApprovalDecision.approve()])
        assert channel.present_plan([card], []).verdict is ApprovalVerdict.REJECT
        assert channel.present_plan([card], []).verdict is ApprovalVerdict.APPROVE
        assert channel.presented == [([card.card_id], []), ([card.card_id], [])]

    def test_exhausted(self):
        with pytest.raises(WorkflowError):
            ScriptedApprovalChannel([]).present_plan([], [])

    def test_satisfies_protocol(self):
        assert isinstance(ScriptedApprovalChannel([]), ApprovalChannel)


def test_callback_channel():
    seen = []

    def decide(cards, conflicts):
        seen.append((list(cards), list(conflicts)))
        return ApprovalDecision.approve()

    channel = CallbackApprovalChannel(decide)
    assert channel.present_plan([], []).verdict is ApprovalVerdict.APPROVE
    assert seen == [([], [])]
