"""
Daily Report Lifecycle — transition engine.

Pure decision logic for DailyReport.status. No database access: callers pass
a ``ReportSnapshot`` and get back either a ``TransitionPlan`` (next status,
timestamps to stamp, ledger entry to append) or a ``ReportError``.

6 valid transitions:

    action            from                 to                 side effect
    ───────────────── ──────────────────── ────────────────── ─────────────────────────────
    submit            draft | rejected     submitted          submitted_at = now, needs ≥1 visit
    withdraw          submitted            draft              submitted_at = None
    manager_approve   submitted            manager_approved   manager_approved_at = now, ledger
    manager_reject    submitted            rejected           ledger (comment required)
    director_approve  manager_approved     approved           director_approved_at = now, ledger
    director_reject   manager_approved     rejected           ledger (comment required)

``approved`` is terminal.  Who may invoke which action is decided by the
authorization gate (app.services.report_permission), not here.

Usage:
    from app.services.report_lifecycle import ReportAction, plan_transition

    plan, err = plan_transition(snapshot, ReportAction.SUBMIT)
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.core.outcomes import Reason, ReportError, invalid_status, validation
from app.models.approval import ApprovalAction, ApprovalLevel
from app.models.daily_report import TEXT_MAX_LENGTH, ReportStatus


class ReportAction(str, enum.Enum):
    SUBMIT = "submit"
    WITHDRAW = "withdraw"
    MANAGER_APPROVE = "manager_approve"
    MANAGER_REJECT = "manager_reject"
    DIRECTOR_APPROVE = "director_approve"
    DIRECTOR_REJECT = "director_reject"


REPORT_TRANSITIONS = {
    ReportAction.SUBMIT: {
        "from": frozenset({ReportStatus.DRAFT, ReportStatus.REJECTED}),
        "to": ReportStatus.SUBMITTED,
    },
    ReportAction.WITHDRAW: {
        "from": frozenset({ReportStatus.SUBMITTED}),
        "to": ReportStatus.DRAFT,
    },
    ReportAction.MANAGER_APPROVE: {
        "from": frozenset({ReportStatus.SUBMITTED}),
        "to": ReportStatus.MANAGER_APPROVED,
        "ledger": (ApprovalAction.APPROVED, ApprovalLevel.MANAGER),
    },
    ReportAction.MANAGER_REJECT: {
        "from": frozenset({ReportStatus.SUBMITTED}),
        "to": ReportStatus.REJECTED,
        "ledger": (ApprovalAction.REJECTED, ApprovalLevel.MANAGER),
    },
    ReportAction.DIRECTOR_APPROVE: {
        "from": frozenset({ReportStatus.MANAGER_APPROVED}),
        "to": ReportStatus.APPROVED,
        "ledger": (ApprovalAction.APPROVED, ApprovalLevel.DIRECTOR),
    },
    ReportAction.DIRECTOR_REJECT: {
        "from": frozenset({ReportStatus.MANAGER_APPROVED}),
        "to": ReportStatus.REJECTED,
        "ledger": (ApprovalAction.REJECTED, ApprovalLevel.DIRECTOR),
    },
}

# Decision (approved/rejected) at a given chain level → engine action
DECISION_ACTIONS = {
    (ApprovalAction.APPROVED, ApprovalLevel.MANAGER): ReportAction.MANAGER_APPROVE,
    (ApprovalAction.REJECTED, ApprovalLevel.MANAGER): ReportAction.MANAGER_REJECT,
    (ApprovalAction.APPROVED, ApprovalLevel.DIRECTOR): ReportAction.DIRECTOR_APPROVE,
    (ApprovalAction.REJECTED, ApprovalLevel.DIRECTOR): ReportAction.DIRECTOR_REJECT,
}

_APPROVED_STATUSES = frozenset({ReportStatus.MANAGER_APPROVED, ReportStatus.APPROVED})


@dataclass(frozen=True)
class ReportSnapshot:
    """Flat view of a report plus its owner's reporting line.

    Built by the report store from one join; the engine and the gate never
    touch ORM objects.
    """

    id: int
    salesperson_id: int
    status: ReportStatus
    manager_id: int | None = None
    director_id: int | None = None
    visit_count: int = 0

    def __post_init__(self):
        object.__setattr__(self, "status", ReportStatus(self.status))


@dataclass(frozen=True)
class LedgerEntry:
    action: ApprovalAction
    approval_level: ApprovalLevel
    comment: str | None


@dataclass(frozen=True)
class TransitionPlan:
    report_id: int
    action: ReportAction
    from_status: ReportStatus
    to_status: ReportStatus
    stamps: dict = field(default_factory=dict)
    ledger_entry: LedgerEntry | None = None


def validate_transition(status: ReportStatus, action: ReportAction) -> dict:
    """
    Validate whether an action is valid for the given status.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    status = ReportStatus(status)
    rule = REPORT_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": status.value, "to": None,
                "reason": f"Unknown action: {action}"}

    if status not in rule["from"]:
        return {"valid": False, "from": status.value, "to": rule["to"].value,
                "reason": f"Cannot '{action.value}' from status '{status.value}'"}

    return {"valid": True, "from": status.value, "to": rule["to"].value, "reason": None}


def get_available_transitions(status: ReportStatus) -> list[ReportAction]:
    """Actions the state machine accepts from ``status`` (ignores who asks)."""
    status = ReportStatus(status)
    return [action for action, rule in REPORT_TRANSITIONS.items() if status in rule["from"]]


def normalize_comment(comment: str | None) -> str | None:
    if comment is not None and not isinstance(comment, str):
        comment = str(comment)
    comment = (comment or "").strip()
    return comment or None


def check_comment(action: ReportAction, comment: str | None) -> ReportError | None:
    """Reject requires a non-empty comment; both decisions cap it at TEXT_MAX_LENGTH."""
    rule = REPORT_TRANSITIONS[action]
    ledger = rule.get("ledger")
    if ledger is None:
        return None
    if ledger[0] is ApprovalAction.REJECTED and not comment:
        return validation("A comment is required to reject a report", Reason.COMMENT_REQUIRED)
    if comment and len(comment) > TEXT_MAX_LENGTH:
        return validation(
            f"Comment must be {TEXT_MAX_LENGTH} characters or fewer",
            Reason.COMMENT_TOO_LONG,
            max_length=TEXT_MAX_LENGTH,
        )
    return None


def plan_transition(
    snapshot: ReportSnapshot,
    action: ReportAction,
    *,
    comment: str | None = None,
    now: datetime | None = None,
) -> tuple[TransitionPlan, None] | tuple[None, ReportError]:
    """
    Compute the effect of ``action`` on ``snapshot``.

    Checks, in order: status legality, comment rules (approve/reject),
    visit count (submit).

    Returns:
        (TransitionPlan, None) when the transition is legal.
        (None, ReportError) with kind INVALID_STATUS or VALIDATION otherwise.
    """
    result = validate_transition(snapshot.status, action)
    if not result["valid"]:
        reason = None
        if action is ReportAction.WITHDRAW and snapshot.status in _APPROVED_STATUSES:
            reason = Reason.ALREADY_APPROVED
        return None, invalid_status(result["reason"], reason, status=snapshot.status.value)

    comment = normalize_comment(comment)
    err = check_comment(action, comment)
    if err:
        return None, err

    if action is ReportAction.SUBMIT and snapshot.visit_count < 1:
        return None, validation("At least one visit record is required to submit", Reason.NO_VISITS)

    now = now or datetime.now(timezone.utc)
    stamps = {}
    if action is ReportAction.SUBMIT:
        stamps["submitted_at"] = now
    elif action is ReportAction.WITHDRAW:
        stamps["submitted_at"] = None
    elif action is ReportAction.MANAGER_APPROVE:
        stamps["manager_approved_at"] = now
    elif action is ReportAction.DIRECTOR_APPROVE:
        stamps["director_approved_at"] = now

    rule = REPORT_TRANSITIONS[action]
    ledger_entry = None
    if "ledger" in rule:
        decision, level = rule["ledger"]
        ledger_entry = LedgerEntry(action=decision, approval_level=level, comment=comment)

    return TransitionPlan(
        report_id=snapshot.id,
        action=action,
        from_status=snapshot.status,
        to_status=rule["to"],
        stamps=stamps,
        ledger_entry=ledger_entry,
    ), None
