"""
Sales Daily Report — report aggregate models.

Models:
    - DailyReport:    aggregate root, one per (salesperson, report_date)
    - VisitRecord:    customer visit owned by a report (insertion order = visit order)
    - Attachment:     file metadata owned by a visit record
    - ReportComment:  free-form comment thread on a report

Architecture:
    Salesperson ──1:N──▶ DailyReport ──1:N──▶ VisitRecord ──1:N──▶ Attachment
    DailyReport ──1:N──▶ ApprovalHistory   (app.models.approval)
    DailyReport ──1:N──▶ ReportComment

Lifecycle states (DailyReport.status):
    draft → submitted → manager_approved → approved
    submitted → draft (withdraw)
    submitted | manager_approved → rejected → submitted

Content (problem, plan, visits, attachments) is editable only while the
report is in an editable status; see ``is_report_editable``.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy.orm import validates

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

class ReportStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    MANAGER_APPROVED = "manager_approved"
    APPROVED = "approved"
    REJECTED = "rejected"


class VisitResult(str, enum.Enum):
    NEGOTIATING = "negotiating"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"
    INFORMATION_GATHERING = "information_gathering"
    OTHER = "other"


EDITABLE_STATUSES = frozenset({ReportStatus.DRAFT, ReportStatus.REJECTED})
DELETABLE_STATUSES = frozenset({ReportStatus.DRAFT})

TEXT_MAX_LENGTH = 2000


def is_report_editable(status) -> bool:
    """Lock predicate shared by report content, visits and attachments."""
    return ReportStatus(status) in EDITABLE_STATUSES


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


def _iso(value):
    return value.isoformat() if value else None


class DailyReport(db.Model):
    """
    Daily report aggregate root.

    Business rules:
    - Exactly one report per (salesperson_id, report_date).
    - Created in ``draft`` regardless of input.
    - ``status`` is written by the report store's conditional update only;
      the column accepts ReportStatus members and nothing else.
    - Hard delete is allowed only in ``draft`` by the owner.
    """

    __tablename__ = "daily_reports"

    id = db.Column(db.Integer, primary_key=True)
    salesperson_id = db.Column(
        db.Integer,
        db.ForeignKey("salespersons.id", ondelete="CASCADE"),
        nullable=False,
    )
    report_date = db.Column(db.Date, nullable=False)
    problem = db.Column(db.Text, nullable=True)
    plan = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.Enum(
            ReportStatus,
            name="report_status",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=ReportStatus.DRAFT,
    )
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manager_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    director_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("salesperson_id", "report_date", name="uq_daily_report_salesperson_date"),
        db.Index("ix_daily_reports_status_submitted", "status", "submitted_at"),
    )

    salesperson = db.relationship("Salesperson")
    visit_records = db.relationship(
        "VisitRecord",
        back_populates="daily_report",
        cascade="all, delete-orphan",
        order_by="VisitRecord.id",
    )
    approval_histories = db.relationship(
        "ApprovalHistory",
        back_populates="daily_report",
        order_by="ApprovalHistory.created_at, ApprovalHistory.id",
        passive_deletes="all",
    )
    comments = db.relationship(
        "ReportComment",
        back_populates="daily_report",
        cascade="all, delete-orphan",
        order_by="ReportComment.created_at, ReportComment.id",
    )

    @validates("status")
    def _validate_status(self, key, value):
        return ReportStatus(value)

    def to_summary(self, visit_count=None):
        return {
            "id": self.id,
            "report_date": _iso(self.report_date),
            "status": self.status.value,
            "submitted_at": _iso(self.submitted_at),
            "salesperson": self.salesperson.to_summary() if self.salesperson else None,
            "visit_count": visit_count if visit_count is not None else len(self.visit_records),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_dict(self, include_children=True):
        d = {
            "id": self.id,
            "salesperson_id": self.salesperson_id,
            "salesperson": self.salesperson.to_summary() if self.salesperson else None,
            "report_date": _iso(self.report_date),
            "problem": self.problem,
            "plan": self.plan,
            "status": self.status.value,
            "submitted_at": _iso(self.submitted_at),
            "manager_approved_at": _iso(self.manager_approved_at),
            "director_approved_at": _iso(self.director_approved_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_children:
            d["visits"] = [v.to_dict() for v in self.visit_records]
            d["approval_history"] = [h.to_dict() for h in self.approval_histories]
            d["comments"] = [c.to_dict() for c in self.comments]
        return d

    def __repr__(self):
        return f"<DailyReport #{self.id} sp={self.salesperson_id} {self.report_date} {self.status}>"


class VisitRecord(db.Model):
    __tablename__ = "visit_records"

    id = db.Column(db.Integer, primary_key=True)
    daily_report_id = db.Column(
        db.Integer,
        db.ForeignKey("daily_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    visit_time = db.Column(db.Time, nullable=True)
    content = db.Column(db.Text, nullable=False)
    result = db.Column(
        db.Enum(
            VisitResult,
            name="visit_result",
            native_enum=False,
            length=30,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    daily_report = db.relationship("DailyReport", back_populates="visit_records")
    customer = db.relationship("Customer")
    attachments = db.relationship(
        "Attachment",
        back_populates="visit_record",
        cascade="all, delete-orphan",
        order_by="Attachment.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "daily_report_id": self.daily_report_id,
            "customer": self.customer.to_summary() if self.customer else None,
            "visit_time": self.visit_time.strftime("%H:%M") if self.visit_time else None,
            "content": self.content,
            "result": self.result.value if self.result else None,
            "attachments": [a.to_dict() for a in self.attachments],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Attachment(db.Model):
    __tablename__ = "attachments"

    id = db.Column(db.Integer, primary_key=True)
    visit_record_id = db.Column(
        db.Integer,
        db.ForeignKey("visit_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name = db.Column(db.String(255), nullable=False, comment="Original client file name")
    file_path = db.Column(db.String(255), nullable=False, comment="Storage key inside UPLOAD_FOLDER")
    content_type = db.Column(db.String(100), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    visit_record = db.relationship("VisitRecord", back_populates="attachments")

    def to_dict(self):
        return {
            "id": self.id,
            "visit_record_id": self.visit_record_id,
            "file_name": self.file_name,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "download_url": f"/api/v1/attachments/{self.id}",
            "created_at": _iso(self.created_at),
        }


class ReportComment(db.Model):
    __tablename__ = "report_comments"

    id = db.Column(db.Integer, primary_key=True)
    daily_report_id = db.Column(
        db.Integer,
        db.ForeignKey("daily_reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    commenter_id = db.Column(db.Integer, db.ForeignKey("salespersons.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    daily_report = db.relationship("DailyReport", back_populates="comments")
    commenter = db.relationship("Salesperson")

    def to_dict(self):
        return {
            "id": self.id,
            "daily_report_id": self.daily_report_id,
            "commenter": self.commenter.to_summary() if self.commenter else None,
            "content": self.content,
            "created_at": _iso(self.created_at),
        }
