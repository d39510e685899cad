"""
Daily Report store — the persistence boundary of the report engine.

``ReportStore`` wraps one SQLAlchemy session and is handed to
``ReportWorkflow`` through its constructor; nothing in the engine reaches
for a module-level session.

Rules:
  - Every write method commits (or rolls back) its own unit of work.
  - Status changes go through ``save_report_transactionally`` only: a
    conditional ``UPDATE ... WHERE status = :expected`` plus the ledger
    insert, committed together.  A writer that lost the race sees zero
    affected rows and gets ``ConflictError``.
  - Missing rows raise ``NotFoundError``; unique violations raise
    ``ConflictError``.  Any other database error is rolled back and
    re-raised untouched.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import aliased

from app.core.exceptions import ConflictError, NotFoundError
from app.models.approval import ApprovalHistory
from app.models.daily_report import (
    DELETABLE_STATUSES,
    EDITABLE_STATUSES,
    Attachment,
    DailyReport,
    ReportComment,
    ReportStatus,
    VisitRecord,
)
from app.models.organization import Customer, Salesperson
from app.services.report_lifecycle import ReportSnapshot, TransitionPlan

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

_SORT_COLUMNS = {
    "report_date": DailyReport.report_date,
    "created_at": DailyReport.created_at,
    "updated_at": DailyReport.updated_at,
    "submitted_at": DailyReport.submitted_at,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def paginate_query(query: Any, page: int = 1, per_page: int = 20) -> tuple[list, int]:
    """Apply offset/limit pagination to a SQLAlchemy query.

    Returns:
        Tuple of (items list, total count).
    """
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    page = max(1, page)
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return items, total


class ReportStore:
    """Repository for the daily report aggregate and its ledger."""

    def __init__(self, session):
        self.session = session

    # ── internal ─────────────────────────────────────────────────────────

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def _get_or_raise(self, model, pk, label=None):
        obj = self.session.get(model, pk)
        if obj is None:
            raise NotFoundError(label or model.__name__, pk)
        return obj

    def _visit_count_subquery(self):
        return (
            select(VisitRecord.daily_report_id, func.count(VisitRecord.id).label("visit_count"))
            .group_by(VisitRecord.daily_report_id)
            .subquery()
        )

    # ── Reports ──────────────────────────────────────────────────────────

    def load_report(self, report_id: int) -> DailyReport:
        return self._get_or_raise(DailyReport, report_id)

    def load_snapshot(self, report_id: int) -> ReportSnapshot:
        """Report status + owner's reporting line + visit count in one query."""
        visits = self._visit_count_subquery()
        row = self.session.execute(
            select(
                DailyReport.id,
                DailyReport.salesperson_id,
                DailyReport.status,
                Salesperson.manager_id,
                Salesperson.director_id,
                func.coalesce(visits.c.visit_count, 0),
            )
            .join(Salesperson, Salesperson.id == DailyReport.salesperson_id)
            .outerjoin(visits, visits.c.daily_report_id == DailyReport.id)
            .where(DailyReport.id == report_id)
        ).one_or_none()
        if row is None:
            raise NotFoundError("DailyReport", report_id)
        return ReportSnapshot(
            id=row[0],
            salesperson_id=row[1],
            status=row[2],
            manager_id=row[3],
            director_id=row[4],
            visit_count=row[5],
        )

    def save_report_transactionally(self, plan: TransitionPlan, actor_id: int) -> DailyReport:
        """Apply ``plan`` atomically: status + stamps + optional ledger row.

        Raises:
            ConflictError: the stored status is no longer ``plan.from_status``.
        """
        now = _utcnow()
        values = {"status": plan.to_status, "updated_at": now, **plan.stamps}
        try:
            result = self.session.execute(
                update(DailyReport)
                .where(
                    DailyReport.id == plan.report_id,
                    DailyReport.status == plan.from_status,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                logger.info(
                    "Stale transition on report %s (expected %s)",
                    plan.report_id, plan.from_status.value,
                    extra={"report_id": plan.report_id, "action": plan.action.value},
                )
                raise ConflictError("DailyReport", "status", plan.from_status.value)

            if plan.ledger_entry is not None:
                self.session.add(ApprovalHistory(
                    daily_report_id=plan.report_id,
                    approver_id=actor_id,
                    action=plan.ledger_entry.action,
                    comment=plan.ledger_entry.comment,
                    approval_level=plan.ledger_entry.approval_level,
                    created_at=now,
                ))
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        report = self.load_report(plan.report_id)
        self.session.refresh(report)
        return report

    def create_report(
        self,
        salesperson_id: int,
        report_date: date,
        problem: str | None = None,
        plan: str | None = None,
        visits: list[dict] | None = None,
    ) -> DailyReport:
        """Insert a new draft report with its initial visits in one commit."""
        existing = self.session.execute(
            select(DailyReport.id).where(
                DailyReport.salesperson_id == salesperson_id,
                DailyReport.report_date == report_date,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise ConflictError("DailyReport", "report_date", report_date.isoformat())

        report = DailyReport(
            salesperson_id=salesperson_id,
            report_date=report_date,
            problem=problem,
            plan=plan,
            status=ReportStatus.DRAFT,
        )
        for visit in visits or []:
            report.visit_records.append(VisitRecord(**visit))
        self.session.add(report)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("DailyReport", "report_date", report_date.isoformat())
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return report

    def update_report_content(self, report_id: int, fields: dict) -> DailyReport:
        """Update problem / plan while the report is still editable.

        The status column is never touched here.

        Raises:
            ConflictError: the report left the editable states meanwhile.
        """
        if fields:
            try:
                result = self.session.execute(
                    update(DailyReport)
                    .where(
                        DailyReport.id == report_id,
                        DailyReport.status.in_(EDITABLE_STATUSES),
                    )
                    .values(updated_at=_utcnow(), **fields)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    self.session.rollback()
                    raise ConflictError("DailyReport", "status", "editable")
                self.session.commit()
            except SQLAlchemyError:
                self.session.rollback()
                raise
        report = self.load_report(report_id)
        self.session.refresh(report)
        return report

    def delete_report(self, report_id: int) -> list[str]:
        """Delete a draft report; visits, attachments, comments and ledger
        rows go with it through the ``ON DELETE CASCADE`` foreign keys.

        Returns the storage keys of the attachment files that belonged to it.

        Raises:
            NotFoundError: no such report.
            ConflictError: the report is no longer a draft.
        """
        self.load_report(report_id)
        keys = self._attachment_keys(VisitRecord.daily_report_id == report_id)
        try:
            result = self.session.execute(
                delete(DailyReport)
                .where(
                    DailyReport.id == report_id,
                    DailyReport.status.in_(DELETABLE_STATUSES),
                )
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != 1:
                self.session.rollback()
                raise ConflictError("DailyReport", "status", "draft")
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return keys

    def _attachment_keys(self, *criteria) -> list[str]:
        return self.session.execute(
            select(Attachment.file_path)
            .join(VisitRecord, VisitRecord.id == Attachment.visit_record_id)
            .where(*criteria)
        ).scalars().all()

    def list_reports(
        self,
        *,
        salesperson_id: int | None = None,
        owner_or_manager_id: int | None = None,
        manager_id: int | None = None,
        status: ReportStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        sort: str = "report_date",
        order: str = "desc",
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[tuple[DailyReport, int]], int]:
        """Filtered, paginated report listing with per-report visit counts."""
        owner = aliased(Salesperson)
        visits = self._visit_count_subquery()
        q = (
            self.session.query(DailyReport, func.coalesce(visits.c.visit_count, 0))
            .join(owner, owner.id == DailyReport.salesperson_id)
            .outerjoin(visits, visits.c.daily_report_id == DailyReport.id)
        )
        if salesperson_id is not None:
            q = q.filter(DailyReport.salesperson_id == salesperson_id)
        if owner_or_manager_id is not None:
            q = q.filter(or_(
                DailyReport.salesperson_id == owner_or_manager_id,
                owner.manager_id == owner_or_manager_id,
            ))
        if manager_id is not None:
            q = q.filter(owner.manager_id == manager_id)
        if status is not None:
            q = q.filter(DailyReport.status == status)
        if date_from is not None:
            q = q.filter(DailyReport.report_date >= date_from)
        if date_to is not None:
            q = q.filter(DailyReport.report_date <= date_to)

        column = _SORT_COLUMNS.get(sort, DailyReport.report_date)
        q = q.order_by(column.asc() if order == "asc" else column.desc(), DailyReport.id.asc())
        rows, total = paginate_query(q, page, per_page)
        return [(report, count) for report, count in rows], total

    def list_reports_for_actor(self, scope: dict, filters: dict | None = None,
                               page: int = 1, per_page: int = 20):
        """Report list restricted by a visibility scope (see ``visibility_scope``)."""
        params = dict(filters or {})
        params.update(scope)
        return self.list_reports(page=page, per_page=per_page, **params)

    def list_reports_by_status(self, status: ReportStatus, *, manager_id: int | None = None,
                               page: int = 1, per_page: int = 20):
        """Approval queue: oldest submission first."""
        return self.list_reports(
            status=status, manager_id=manager_id,
            sort="submitted_at", order="asc", page=page, per_page=per_page,
        )

    # ── Visits ───────────────────────────────────────────────────────────

    def list_visits(self, report_id: int) -> list[VisitRecord]:
        return self.session.execute(
            select(VisitRecord)
            .where(VisitRecord.daily_report_id == report_id)
            .order_by(VisitRecord.id.asc())
        ).scalars().all()

    def get_visit(self, report_id: int, visit_id: int) -> VisitRecord:
        """Visit scoped to its report; a visit of another report is NotFound."""
        visit = self.session.get(VisitRecord, visit_id)
        if visit is None or visit.daily_report_id != report_id:
            raise NotFoundError("VisitRecord", visit_id)
        return visit

    def get_visit_any(self, visit_id: int) -> VisitRecord:
        return self._get_or_raise(VisitRecord, visit_id)

    def create_visit(self, report_id: int, data: dict) -> VisitRecord:
        visit = VisitRecord(daily_report_id=report_id, **data)
        self.session.add(visit)
        self._commit()
        return visit

    def update_visit(self, report_id: int, visit_id: int, data: dict) -> VisitRecord:
        visit = self.get_visit(report_id, visit_id)
        for key, value in data.items():
            setattr(visit, key, value)
        self._commit()
        return visit

    def delete_visit(self, report_id: int, visit_id: int) -> list[str]:
        """Delete a visit and its attachment rows; returns the file keys to remove."""
        visit = self.get_visit(report_id, visit_id)
        keys = [attachment.file_path for attachment in visit.attachments]
        self.session.delete(visit)
        self._commit()
        return keys

    def get_customer(self, customer_id: int) -> Customer | None:
        return self.session.get(Customer, customer_id)

    # ── Attachments ──────────────────────────────────────────────────────

    def get_attachment(self, attachment_id: int) -> Attachment:
        return self._get_or_raise(Attachment, attachment_id)

    def create_attachment(self, visit_id: int, meta: dict) -> Attachment:
        attachment = Attachment(visit_record_id=visit_id, **meta)
        self.session.add(attachment)
        self._commit()
        return attachment

    def delete_attachment(self, attachment_id: int) -> None:
        attachment = self.get_attachment(attachment_id)
        self.session.delete(attachment)
        self._commit()

    # ── Ledger (read side; writes only via save_report_transactionally) ──

    def list_history(self, report_id: int) -> list[ApprovalHistory]:
        return self.session.execute(
            select(ApprovalHistory)
            .where(ApprovalHistory.daily_report_id == report_id)
            .order_by(ApprovalHistory.created_at.asc(), ApprovalHistory.id.asc())
        ).scalars().all()

    # ── Comments ─────────────────────────────────────────────────────────

    def list_comments(self, report_id: int) -> list[ReportComment]:
        return self.session.execute(
            select(ReportComment)
            .where(ReportComment.daily_report_id == report_id)
            .order_by(ReportComment.created_at.asc(), ReportComment.id.asc())
        ).scalars().all()

    def get_comment(self, comment_id: int) -> ReportComment:
        return self._get_or_raise(ReportComment, comment_id)

    def add_comment(self, report_id: int, commenter_id: int, content: str) -> ReportComment:
        comment = ReportComment(daily_report_id=report_id, commenter_id=commenter_id, content=content)
        self.session.add(comment)
        self._commit()
        return comment

    def delete_comment(self, comment_id: int) -> None:
        comment = self.get_comment(comment_id)
        self.session.delete(comment)
        self._commit()

    # ── Actors ───────────────────────────────────────────────────────────

    def get_active_salesperson(self, salesperson_id: int) -> Salesperson | None:
        person = self.session.get(Salesperson, salesperson_id)
        if person is None or not person.is_active:
            return None
        return person
