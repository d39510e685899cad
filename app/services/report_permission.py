"""
Daily Report — authorization gate.

Answers "may this actor do X to this report right now?" from three inputs:
the actor (id + position level), a ``ReportSnapshot`` (owner, status,
owner's manager/director ids) and the requested action.  Pure id comparisons
against the stored reporting-line foreign keys; no database access.

Rules, evaluated per action:
    edit       owner AND status in {draft, rejected}
    delete     owner AND status == draft
    submit     owner AND the state machine accepts the action
    withdraw   owner AND the state machine accepts the action
    view       owner OR director OR (manager AND owner.manager_id == actor.id)
    approve /  manager level:  actor is Manager AND owner.manager_id == actor.id
    reject                     AND status == submitted
               director level: actor is Director AND status == manager_approved
                               (any Director, not only owner.director_id)

Denials carry a stable kind: FORBIDDEN for "wrong person", INVALID_STATUS for
"wrong state".  Relation is checked before state.

Usage:
    from app.services.report_permission import GateAction, can_perform

    decision = can_perform(actor, snapshot, GateAction.APPROVE)
    if not decision.allowed:
        return None, decision.error
"""

import enum
from dataclasses import dataclass

from app.core.actor import Actor
from app.core.outcomes import Reason, ReportError, forbidden, invalid_status
from app.models.approval import ApprovalAction, ApprovalLevel
from app.models.daily_report import DELETABLE_STATUSES, ReportStatus, is_report_editable
from app.services.report_lifecycle import (
    DECISION_ACTIONS,
    ReportAction,
    ReportSnapshot,
    validate_transition,
)


class GateAction(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SUBMIT = "submit"
    WITHDRAW = "withdraw"
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class Decision:
    """Gate verdict.  ``engine_action`` is set for allowed transition requests."""

    error: ReportError | None = None
    engine_action: ReportAction | None = None

    @property
    def allowed(self) -> bool:
        return self.error is None


ALLOW = Decision()

_APPROVED_STATUSES = frozenset({ReportStatus.MANAGER_APPROVED, ReportStatus.APPROVED})


def _deny(error: ReportError) -> Decision:
    return Decision(error=error)


def is_owner(actor: Actor, snapshot: ReportSnapshot) -> bool:
    return actor.id == snapshot.salesperson_id


def is_direct_manager(actor: Actor, snapshot: ReportSnapshot) -> bool:
    return actor.is_manager and snapshot.manager_id is not None and snapshot.manager_id == actor.id


# ── Individual rules ─────────────────────────────────────────────────────────


def _check_edit(actor, snapshot):
    if not is_owner(actor, snapshot):
        return _deny(forbidden("Only the report owner can edit this report", Reason.NOT_OWNER))
    if not is_report_editable(snapshot.status):
        return _deny(invalid_status(
            "Only draft or rejected reports can be edited", status=snapshot.status.value,
        ))
    return ALLOW


def _check_delete(actor, snapshot):
    if not is_owner(actor, snapshot):
        return _deny(forbidden("Only the report owner can delete this report", Reason.NOT_OWNER))
    if snapshot.status not in DELETABLE_STATUSES:
        return _deny(invalid_status(
            "Only draft reports can be deleted", status=snapshot.status.value,
        ))
    return ALLOW


def _check_owner_transition(actor, snapshot, engine_action):
    if not is_owner(actor, snapshot):
        return _deny(forbidden(
            f"Only the report owner can {engine_action.value} this report", Reason.NOT_OWNER,
        ))
    result = validate_transition(snapshot.status, engine_action)
    if not result["valid"]:
        reason = None
        if engine_action is ReportAction.WITHDRAW and snapshot.status in _APPROVED_STATUSES:
            reason = Reason.ALREADY_APPROVED
        return _deny(invalid_status(result["reason"], reason, status=snapshot.status.value))
    return Decision(engine_action=engine_action)


def _check_view(actor, snapshot):
    if is_owner(actor, snapshot) or actor.is_director or is_direct_manager(actor, snapshot):
        return ALLOW
    return _deny(forbidden("You are not allowed to view this report"))


def _check_decision(actor, snapshot, decision: ApprovalAction):
    verb = "approve" if decision is ApprovalAction.APPROVED else "reject"
    if actor.is_manager:
        if not is_direct_manager(actor, snapshot):
            return _deny(forbidden(
                f"Only the owner's direct manager can {verb} this report",
                Reason.NOT_DIRECT_MANAGER,
            ))
        level, required = ApprovalLevel.MANAGER, ReportStatus.SUBMITTED
    elif actor.is_director:
        level, required = ApprovalLevel.DIRECTOR, ReportStatus.MANAGER_APPROVED
    else:
        return _deny(forbidden(f"Staff members cannot {verb} reports", Reason.NOT_APPROVER))

    if snapshot.status != required:
        return _deny(invalid_status(
            f"Cannot {verb} a report in status '{snapshot.status.value}' at {level.value} level",
            status=snapshot.status.value,
        ))
    return Decision(engine_action=DECISION_ACTIONS[(decision, level)])


# ── Public API ───────────────────────────────────────────────────────────────


def can_perform(actor: Actor, snapshot: ReportSnapshot, action: GateAction) -> Decision:
    """Single decision function for every report-scoped action."""
    action = GateAction(action)
    if action is GateAction.EDIT:
        return _check_edit(actor, snapshot)
    if action is GateAction.DELETE:
        return _check_delete(actor, snapshot)
    if action is GateAction.SUBMIT:
        return _check_owner_transition(actor, snapshot, ReportAction.SUBMIT)
    if action is GateAction.WITHDRAW:
        return _check_owner_transition(actor, snapshot, ReportAction.WITHDRAW)
    if action is GateAction.VIEW:
        return _check_view(actor, snapshot)
    if action is GateAction.APPROVE:
        return _check_decision(actor, snapshot, ApprovalAction.APPROVED)
    return _check_decision(actor, snapshot, ApprovalAction.REJECTED)


def can_edit(actor: Actor, snapshot: ReportSnapshot) -> bool:
    return can_perform(actor, snapshot, GateAction.EDIT).allowed


def can_view(actor: Actor, snapshot: ReportSnapshot) -> bool:
    return can_perform(actor, snapshot, GateAction.VIEW).allowed


def allowed_actions(actor: Actor, snapshot: ReportSnapshot) -> list[str]:
    """Every GateAction the actor may perform right now, for UI buttons."""
    return [a.value for a in GateAction if can_perform(actor, snapshot, a).allowed]


def approval_queue_scope(actor: Actor) -> tuple[dict, None] | tuple[None, ReportError]:
    """Filter describing the actor's approval queue.

    Manager:  submitted reports whose owner's manager_id is the actor.
    Director: every manager_approved report.
    Staff:    no queue.
    """
    if actor.is_manager:
        return {"status": ReportStatus.SUBMITTED, "manager_id": actor.id}, None
    if actor.is_director:
        return {"status": ReportStatus.MANAGER_APPROVED}, None
    return None, forbidden("Staff members have no approval queue", Reason.NOT_APPROVER)


def visibility_scope(actor: Actor) -> dict:
    """Filter for report listings: what the actor may see at all.

    Staff: own reports.  Manager: own + direct reports.  Director: all.
    """
    if actor.is_director:
        return {}
    if actor.is_manager:
        return {"owner_or_manager_id": actor.id}
    return {"salesperson_id": actor.id}
