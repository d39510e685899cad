"""
Approval History — immutable ledger of approve / reject decisions.

Every approve or reject transition appends exactly one ApprovalHistory row,
written in the same transaction as the status change on DailyReport.
Rows are never mutated or deleted by application code: the mapper events
below refuse ORM-level updates and deletes of persisted rows.

Ordering is chronological (created_at, then id) — the audit trail and the
"latest rejection reason" lookup both depend on it.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import event

from app.models import db


class ApprovalAction(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalLevel(str, enum.Enum):
    MANAGER = "manager"
    DIRECTOR = "director"


class ImmutableRecordError(Exception):
    """Raised when code tries to modify or delete a ledger row."""


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class ApprovalHistory(db.Model):
    """
    Append-only approval decision.

    Business rules:
    - One row per approve/reject transition, never more.
    - ``comment`` is mandatory for rejections (enforced by the transition engine).
    - ``approval_level`` records which stage of the chain decided.
    """

    __tablename__ = "approval_histories"

    id = db.Column(db.Integer, primary_key=True)
    daily_report_id = db.Column(
        db.Integer,
        db.ForeignKey("daily_reports.id", ondelete="CASCADE"),
        nullable=False,
    )
    approver_id = db.Column(db.Integer, db.ForeignKey("salespersons.id"), nullable=False)
    action = db.Column(
        db.Enum(ApprovalAction, name="approval_action", native_enum=False, length=20,
                values_callable=_enum_values, validate_strings=True),
        nullable=False,
    )
    comment = db.Column(db.Text, nullable=True)
    approval_level = db.Column(
        db.Enum(ApprovalLevel, name="approval_level", native_enum=False, length=20,
                values_callable=_enum_values, validate_strings=True),
        nullable=False,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_approval_histories_report_created", "daily_report_id", "created_at"),
    )

    daily_report = db.relationship("DailyReport", back_populates="approval_histories")
    approver = db.relationship("Salesperson")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "daily_report_id": self.daily_report_id,
            "approver": self.approver.to_summary() if self.approver else {"id": self.approver_id},
            "action": self.action.value,
            "comment": self.comment,
            "approval_level": self.approval_level.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<ApprovalHistory #{self.id} report={self.daily_report_id} {self.approval_level}/{self.action}>"


@event.listens_for(ApprovalHistory, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableRecordError(f"ApprovalHistory #{target.id} is append-only")


@event.listens_for(ApprovalHistory, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableRecordError(f"ApprovalHistory #{target.id} cannot be deleted")
