"""
Tests: Daily Report transition engine (pure, no database).

Covers:
    - validate_transition / get_available_transitions over the full table
    - plan_transition side effects (stamps, ledger entries)
    - comment rules for approve / reject
    - NO_VISITS at submit time
    - ALREADY_APPROVED on late withdraw
"""

from datetime import datetime, timezone

import pytest

from app.core.outcomes import ErrorKind, Reason
from app.models.approval import ApprovalAction, ApprovalLevel
from app.models.daily_report import ReportStatus
from app.services.report_lifecycle import (
    REPORT_TRANSITIONS,
    ReportAction,
    ReportSnapshot,
    get_available_transitions,
    plan_transition,
    validate_transition,
)

NOW = datetime(2026, 10, 19, 18, 30, tzinfo=timezone.utc)


def _snap(status, visits=1):
    return ReportSnapshot(id=1, salesperson_id=3, status=status, manager_id=2, director_id=1,
                          visit_count=visits)


class TestTransitionTable:
    EXPECTED = {
        (ReportStatus.DRAFT, ReportAction.SUBMIT): ReportStatus.SUBMITTED,
        (ReportStatus.REJECTED, ReportAction.SUBMIT): ReportStatus.SUBMITTED,
        (ReportStatus.SUBMITTED, ReportAction.WITHDRAW): ReportStatus.DRAFT,
        (ReportStatus.SUBMITTED, ReportAction.MANAGER_APPROVE): ReportStatus.MANAGER_APPROVED,
        (ReportStatus.SUBMITTED, ReportAction.MANAGER_REJECT): ReportStatus.REJECTED,
        (ReportStatus.MANAGER_APPROVED, ReportAction.DIRECTOR_APPROVE): ReportStatus.APPROVED,
        (ReportStatus.MANAGER_APPROVED, ReportAction.DIRECTOR_REJECT): ReportStatus.REJECTED,
    }

    @pytest.mark.parametrize("status", list(ReportStatus))
    @pytest.mark.parametrize("action", list(ReportAction))
    def test_only_listed_pairs_are_valid(self, status, action):
        result = validate_transition(status, action)
        expected = self.EXPECTED.get((status, action))
        assert result["valid"] is (expected is not None)
        if expected is not None:
            assert result["to"] == expected.value
            assert result["reason"] is None
        else:
            assert result["reason"]

    def test_approved_is_terminal(self):
        assert get_available_transitions(ReportStatus.APPROVED) == []

    def test_available_from_submitted(self):
        assert set(get_available_transitions(ReportStatus.SUBMITTED)) == {
            ReportAction.WITHDRAW, ReportAction.MANAGER_APPROVE, ReportAction.MANAGER_REJECT,
        }

    def test_accepts_plain_string_status(self):
        assert validate_transition("draft", ReportAction.SUBMIT)["valid"] is True

    def test_every_decision_action_writes_ledger(self):
        decisions = {a for a, rule in REPORT_TRANSITIONS.items() if "ledger" in rule}
        assert decisions == {
            ReportAction.MANAGER_APPROVE, ReportAction.MANAGER_REJECT,
            ReportAction.DIRECTOR_APPROVE, ReportAction.DIRECTOR_REJECT,
        }


class TestPlanTransition:
    def test_submit_stamps_submitted_at(self):
        plan, err = plan_transition(_snap(ReportStatus.DRAFT), ReportAction.SUBMIT, now=NOW)
        assert err is None
        assert plan.to_status is ReportStatus.SUBMITTED
        assert plan.stamps == {"submitted_at": NOW}
        assert plan.ledger_entry is None

    def test_submit_without_visits_fails_validation(self):
        plan, err = plan_transition(_snap(ReportStatus.DRAFT, visits=0), ReportAction.SUBMIT)
        assert plan is None
        assert err.kind is ErrorKind.VALIDATION
        assert err.reason == Reason.NO_VISITS

    def test_resubmit_from_rejected_goes_straight_to_submitted(self):
        plan, err = plan_transition(_snap(ReportStatus.REJECTED), ReportAction.SUBMIT, now=NOW)
        assert err is None
        assert plan.from_status is ReportStatus.REJECTED
        assert plan.to_status is ReportStatus.SUBMITTED

    def test_withdraw_clears_submitted_at(self):
        plan, err = plan_transition(_snap(ReportStatus.SUBMITTED), ReportAction.WITHDRAW)
        assert err is None
        assert plan.to_status is ReportStatus.DRAFT
        assert plan.stamps == {"submitted_at": None}

    @pytest.mark.parametrize("status", [ReportStatus.MANAGER_APPROVED, ReportStatus.APPROVED])
    def test_withdraw_after_approval_is_already_approved(self, status):
        plan, err = plan_transition(_snap(status), ReportAction.WITHDRAW)
        assert plan is None
        assert err.kind is ErrorKind.INVALID_STATUS
        assert err.reason == Reason.ALREADY_APPROVED

    def test_withdraw_from_draft_is_plain_invalid_status(self):
        _, err = plan_transition(_snap(ReportStatus.DRAFT), ReportAction.WITHDRAW)
        assert err.kind is ErrorKind.INVALID_STATUS
        assert err.reason is None

    def test_manager_approve_stamps_and_ledger(self):
        plan, err = plan_transition(
            _snap(ReportStatus.SUBMITTED), ReportAction.MANAGER_APPROVE, comment=" ok ", now=NOW,
        )
        assert err is None
        assert plan.stamps == {"manager_approved_at": NOW}
        assert plan.ledger_entry.action is ApprovalAction.APPROVED
        assert plan.ledger_entry.approval_level is ApprovalLevel.MANAGER
        assert plan.ledger_entry.comment == "ok"

    def test_approve_comment_is_optional(self):
        plan, err = plan_transition(_snap(ReportStatus.MANAGER_APPROVED), ReportAction.DIRECTOR_APPROVE)
        assert err is None
        assert plan.ledger_entry.comment is None
        assert "director_approved_at" in plan.stamps

    @pytest.mark.parametrize("comment", [None, "", "   "])
    def test_reject_requires_comment(self, comment):
        plan, err = plan_transition(
            _snap(ReportStatus.MANAGER_APPROVED), ReportAction.DIRECTOR_REJECT, comment=comment,
        )
        assert plan is None
        assert err.kind is ErrorKind.VALIDATION
        assert err.reason == Reason.COMMENT_REQUIRED

    def test_reject_does_not_stamp_timestamps(self):
        plan, err = plan_transition(
            _snap(ReportStatus.SUBMITTED), ReportAction.MANAGER_REJECT, comment="redo",
        )
        assert err is None
        assert plan.stamps == {}
        assert plan.ledger_entry.action is ApprovalAction.REJECTED
        assert plan.ledger_entry.comment == "redo"

    def test_comment_length_cap(self):
        _, err = plan_transition(
            _snap(ReportStatus.SUBMITTED), ReportAction.MANAGER_APPROVE, comment="x" * 2001,
        )
        assert err.kind is ErrorKind.VALIDATION
        assert err.reason == Reason.COMMENT_TOO_LONG

        plan, err = plan_transition(
            _snap(ReportStatus.SUBMITTED), ReportAction.MANAGER_APPROVE, comment="x" * 2000,
        )
        assert err is None

    def test_status_checked_before_comment(self):
        _, err = plan_transition(_snap(ReportStatus.APPROVED), ReportAction.DIRECTOR_REJECT, comment="")
        assert err.kind is ErrorKind.INVALID_STATUS
