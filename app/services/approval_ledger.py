"""
Approval History Ledger — read side.

The write side lives inside ``ReportStore.save_report_transactionally`` so
that a ledger row can never exist without its status change.  This module
turns stored rows into the audit trail and the "reason for rejection"
(差戻し理由) shown to the report owner.
"""

from app.models.approval import ApprovalAction


def audit_trail(entries) -> list[dict]:
    """Serialize ledger rows, oldest first."""
    ordered = sorted(entries, key=lambda h: (h.created_at, h.id))
    return [h.to_dict() for h in ordered]


def latest_rejection_comment(entries) -> str | None:
    """Comment of the most recent ``rejected`` entry, or None."""
    rejections = [h for h in entries if h.action is ApprovalAction.REJECTED]
    if not rejections:
        return None
    latest = max(rejections, key=lambda h: (h.created_at, h.id))
    return latest.comment


def summarize(entries) -> dict:
    """Compact view for report detail screens."""
    entries = list(entries)
    return {
        "entries": audit_trail(entries),
        "rejection_reason": latest_rejection_comment(entries),
        "decision_count": len(entries),
    }
