"""
Daily Report workflow service — the operations the route layer calls.

Composes the authorization gate (report_permission), the transition engine
(report_lifecycle) and the injected ``ReportStore``:

    load snapshot → gate decision → engine plan → atomic store write

Every public method returns ``(value, None)`` or ``(None, ReportError)``.
Store exceptions for missing rows and lost races are converted into
``ReportError`` values here; any other exception (database down, disk
full) propagates untouched and becomes an opaque 500 upstream.

Usage:
    workflow = ReportWorkflow(ReportStore(db.session))
    report, err = workflow.submit_report(actor, report_id)
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from app.core.actor import Actor
from app.core.exceptions import ConflictError, NotFoundError
from app.core.outcomes import (
    Reason,
    ReportError,
    conflict,
    forbidden,
    invalid_status,
    not_found,
    validation,
)
from app.models.daily_report import TEXT_MAX_LENGTH, VisitResult
from app.services import approval_ledger
from app.services.attachment_storage import (
    ALLOWED_CONTENT_TYPES,
    DEFAULT_MAX_SIZE,
    AttachmentStorage,
)
from app.services.report_lifecycle import plan_transition
from app.services.report_permission import (
    GateAction,
    allowed_actions,
    approval_queue_scope,
    can_perform,
    visibility_scope,
)
from app.utils.helpers import parse_time_input

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_VISIT_FIELDS = ("customer_id", "visit_time", "content", "result")


def _page(rows, total, page, per_page) -> dict:
    per_page = max(1, min(per_page, MAX_PAGE_SIZE))
    return {
        "items": [report.to_summary(visit_count=count) for report, count in rows],
        "total": total,
        "page": max(1, page),
        "per_page": per_page,
        "total_pages": (total + per_page - 1) // per_page,
    }


def _check_text(name: str, value, *, required=False) -> ReportError | None:
    if value is None or value == "":
        if required:
            return validation(f"{name} is required", field=name)
        return None
    if not isinstance(value, str):
        return validation(f"{name} must be a string", field=name)
    if len(value) > TEXT_MAX_LENGTH:
        return validation(
            f"{name} must be {TEXT_MAX_LENGTH} characters or fewer",
            field=name, max_length=TEXT_MAX_LENGTH,
        )
    return None


class ReportWorkflow:
    """Report lifecycle, content editing and approval chain for one store."""

    def __init__(self, store, storage: AttachmentStorage | None = None,
                 max_attachment_size: int = DEFAULT_MAX_SIZE):
        self.store = store
        self.storage = storage
        self.max_attachment_size = max_attachment_size

    # ── internal ─────────────────────────────────────────────────────────

    def _snapshot(self, report_id):
        try:
            return self.store.load_snapshot(report_id), None
        except NotFoundError:
            return None, not_found("DailyReport", report_id)

    def _authorize(self, actor: Actor, report_id, action: GateAction):
        """Snapshot + gate.  Returns (snapshot, decision, None) or (None, None, err)."""
        snapshot, err = self._snapshot(report_id)
        if err:
            return None, None, err
        decision = can_perform(actor, snapshot, action)
        if not decision.allowed:
            self._log_denial(actor, report_id, action.value, decision.error)
            return None, None, decision.error
        return snapshot, decision, None

    @staticmethod
    def _log_denial(actor, report_id, action, err: ReportError):
        logger.info(
            "Report %s %s denied for salesperson %s: %s",
            report_id, action, actor.id, err.kind.value,
            extra={
                "actor_id": actor.id,
                "report_id": report_id,
                "action": action,
                "error_kind": err.kind.value,
            },
        )

    def _transition(self, actor: Actor, report_id, action: GateAction, comment=None):
        snapshot, decision, err = self._authorize(actor, report_id, action)
        if err:
            return None, err

        plan, err = plan_transition(snapshot, decision.engine_action, comment=comment)
        if err:
            self._log_denial(actor, report_id, action.value, err)
            return None, err

        try:
            report = self.store.save_report_transactionally(plan, actor.id)
        except ConflictError:
            err = invalid_status(
                "Report status changed by another request; reload and try again",
                Reason.STALE_STATUS,
                status=plan.from_status.value,
            )
            self._log_denial(actor, report_id, action.value, err)
            return None, err
        except NotFoundError:
            return None, not_found("DailyReport", report_id)
        except SQLAlchemyError:
            logger.exception(
                "Storage failure during %s on report %s", plan.action.value, report_id,
                extra={"actor_id": actor.id, "report_id": report_id, "action": plan.action.value},
            )
            raise

        logger.info(
            "Report %s %s: %s → %s by salesperson %s",
            report_id, plan.action.value, plan.from_status.value, plan.to_status.value, actor.id,
            extra={"actor_id": actor.id, "report_id": report_id, "action": plan.action.value},
        )
        return report, None

    # ── Transitions ──────────────────────────────────────────────────────

    def submit_report(self, actor: Actor, report_id: int):
        return self._transition(actor, report_id, GateAction.SUBMIT)

    def withdraw_report(self, actor: Actor, report_id: int):
        return self._transition(actor, report_id, GateAction.WITHDRAW)

    def approve_report(self, actor: Actor, report_id: int, comment: str | None = None):
        return self._transition(actor, report_id, GateAction.APPROVE, comment=comment)

    def reject_report(self, actor: Actor, report_id: int, comment: str | None = None):
        return self._transition(actor, report_id, GateAction.REJECT, comment=comment)

    # ── Predicates ───────────────────────────────────────────────────────

    def can_edit(self, actor: Actor, report_id: int) -> bool:
        snapshot, err = self._snapshot(report_id)
        return err is None and can_perform(actor, snapshot, GateAction.EDIT).allowed

    def can_view(self, actor: Actor, report_id: int) -> bool:
        snapshot, err = self._snapshot(report_id)
        return err is None and can_perform(actor, snapshot, GateAction.VIEW).allowed

    def available_actions(self, actor: Actor, report_id: int):
        snapshot, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return allowed_actions(actor, snapshot), None

    # ── Queues & listings ────────────────────────────────────────────────

    def list_approval_queue(self, actor: Actor, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE):
        """Reports waiting for this actor's decision, oldest submission first."""
        scope, err = approval_queue_scope(actor)
        if err:
            return None, err
        rows, total = self.store.list_reports_by_status(
            scope["status"], manager_id=scope.get("manager_id"), page=page, per_page=per_page,
        )
        return _page(rows, total, page, per_page), None

    def list_reports(self, actor: Actor, filters: dict | None = None,
                     page: int = 1, per_page: int = DEFAULT_PAGE_SIZE):
        """Visibility-scoped report list.

        ``filters`` may hold date_from, date_to, status, salesperson_id,
        sort and order.  A salesperson filter from Staff is ignored; the
        visibility scope always wins over a caller-supplied filter.
        """
        filters = dict(filters or {})
        if actor.is_staff:
            filters.pop("salesperson_id", None)
        rows, total = self.store.list_reports_for_actor(
            visibility_scope(actor), filters, page=page, per_page=per_page,
        )
        return _page(rows, total, page, per_page), None

    # ── Report aggregate ─────────────────────────────────────────────────

    def create_report(self, actor: Actor, report_date: date, problem=None, plan=None, visits=None):
        """Create a draft report for the actor, optionally with initial visits."""
        if not isinstance(report_date, date):
            return None, validation("report_date is required", field="report_date")
        for name, value in (("problem", problem), ("plan", plan)):
            err = _check_text(name, value)
            if err:
                return None, err

        cleaned = []
        for raw in visits or []:
            visit, err = self._clean_visit(raw)
            if err:
                return None, err
            cleaned.append(visit)

        try:
            report = self.store.create_report(
                actor.id, report_date, problem=problem, plan=plan, visits=cleaned,
            )
        except ConflictError:
            return None, conflict(
                f"A report for {report_date.isoformat()} already exists",
                Reason.DUPLICATE_REPORT,
            )
        logger.info(
            "Report %s created for %s by salesperson %s",
            report.id, report_date.isoformat(), actor.id,
            extra={"actor_id": actor.id, "report_id": report.id, "action": "create"},
        )
        return report, None

    def get_report(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return self.store.load_report(report_id), None

    def update_report(self, actor: Actor, report_id: int, fields: dict):
        """Update problem / plan.  A rejected report stays ``rejected``."""
        _, _, err = self._authorize(actor, report_id, GateAction.EDIT)
        if err:
            return None, err

        changes = {k: fields[k] for k in ("problem", "plan") if k in fields}
        for name, value in changes.items():
            err = _check_text(name, value)
            if err:
                return None, err

        try:
            report = self.store.update_report_content(report_id, changes)
        except ConflictError:
            return None, invalid_status(
                "Report is no longer editable", Reason.STALE_STATUS,
            )
        return report, None

    def delete_report(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.DELETE)
        if err:
            return None, err
        try:
            keys = self.store.delete_report(report_id)
        except NotFoundError:
            return None, not_found("DailyReport", report_id)
        except ConflictError:
            err = invalid_status(
                "Only draft reports can be deleted", Reason.STALE_STATUS,
            )
            self._log_denial(actor, report_id, GateAction.DELETE.value, err)
            return None, err
        self._remove_files(keys)
        logger.info(
            "Report %s deleted by salesperson %s", report_id, actor.id,
            extra={"actor_id": actor.id, "report_id": report_id, "action": "delete"},
        )
        return True, None

    # ── Visits ───────────────────────────────────────────────────────────

    def _clean_visit(self, data: dict, partial: bool = False):
        """Validate visit fields.  Returns (clean_dict, None) or (None, err)."""
        data = data or {}
        clean = {}

        if "customer_id" in data or not partial:
            customer_id = data.get("customer_id")
            if isinstance(customer_id, bool) or not isinstance(customer_id, int):
                return None, validation("customer_id is required", field="customer_id")
            customer = self.store.get_customer(customer_id)
            if customer is None:
                return None, validation(
                    "Customer not found", field="customer_id", customer_id=customer_id,
                )
            if not customer.is_active:
                return None, validation(
                    "Customer is inactive", Reason.INACTIVE_CUSTOMER, customer_id=customer_id,
                )
            clean["customer_id"] = customer_id

        if "content" in data or not partial:
            content = data.get("content")
            if isinstance(content, str):
                content = content.strip()
            err = _check_text("content", content, required=True)
            if err:
                return None, err
            clean["content"] = content

        if "visit_time" in data:
            try:
                clean["visit_time"] = parse_time_input(data["visit_time"])
            except ValueError as exc:
                return None, validation(str(exc), field="visit_time")

        if "result" in data:
            result = data["result"]
            if result in (None, ""):
                clean["result"] = None
            else:
                try:
                    clean["result"] = VisitResult(result)
                except ValueError:
                    return None, validation(
                        f"Invalid result: {result}", field="result",
                        allowed=[r.value for r in VisitResult],
                    )

        unknown = set(data) - set(_VISIT_FIELDS) - {"id"}
        if unknown:
            logger.debug("Ignoring unknown visit fields: %s", sorted(unknown))
        return clean, None

    def list_visits(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return self.store.list_visits(report_id), None

    def add_visit(self, actor: Actor, report_id: int, data: dict):
        _, _, err = self._authorize(actor, report_id, GateAction.EDIT)
        if err:
            return None, err
        clean, err = self._clean_visit(data)
        if err:
            return None, err
        visit = self.store.create_visit(report_id, clean)
        return visit, None

    def update_visit(self, actor: Actor, report_id: int, visit_id: int, data: dict):
        _, _, err = self._authorize(actor, report_id, GateAction.EDIT)
        if err:
            return None, err
        clean, err = self._clean_visit(data, partial=True)
        if err:
            return None, err
        try:
            return self.store.update_visit(report_id, visit_id, clean), None
        except NotFoundError:
            return None, not_found("VisitRecord", visit_id)

    def delete_visit(self, actor: Actor, report_id: int, visit_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.EDIT)
        if err:
            return None, err
        try:
            keys = self.store.delete_visit(report_id, visit_id)
        except NotFoundError:
            return None, not_found("VisitRecord", visit_id)
        self._remove_files(keys)
        return True, None

    # ── Attachments ──────────────────────────────────────────────────────

    def add_attachment(self, actor: Actor, visit_id: int, file_name: str,
                       content_type: str, content: bytes):
        """Store bytes + metadata for a visit of an editable report."""
        try:
            visit = self.store.get_visit_any(visit_id)
        except NotFoundError:
            return None, not_found("VisitRecord", visit_id)
        _, _, err = self._authorize(actor, visit.daily_report_id, GateAction.EDIT)
        if err:
            return None, err

        if not file_name:
            return None, validation("A file is required", field="file")
        if content_type not in ALLOWED_CONTENT_TYPES:
            return None, validation(
                f"Unsupported file type: {content_type}", Reason.UNSUPPORTED_FILE_TYPE,
                content_type=content_type,
            )
        if len(content) > self.max_attachment_size:
            return None, validation(
                "File is too large", Reason.FILE_TOO_LARGE, max_size=self.max_attachment_size,
            )

        key = self.storage.save(file_name, content)
        try:
            attachment = self.store.create_attachment(visit_id, {
                "file_name": file_name,
                "file_path": key,
                "content_type": content_type,
                "file_size": len(content),
            })
        except SQLAlchemyError:
            self.storage.remove(key)
            raise
        return attachment, None

    def _attachment_with_access(self, actor: Actor, attachment_id: int, action: GateAction):
        try:
            attachment = self.store.get_attachment(attachment_id)
        except NotFoundError:
            return None, not_found("Attachment", attachment_id)
        _, _, err = self._authorize(actor, attachment.visit_record.daily_report_id, action)
        if err:
            return None, err
        return attachment, None

    def get_attachment(self, actor: Actor, attachment_id: int):
        """Returns ((attachment, absolute_path), None) for a readable attachment."""
        attachment, err = self._attachment_with_access(actor, attachment_id, GateAction.VIEW)
        if err:
            return None, err
        path = self.storage.path_for(attachment.file_path)
        if path is None:
            return None, not_found("Attachment file", attachment_id)
        return (attachment, path), None

    def delete_attachment(self, actor: Actor, attachment_id: int):
        attachment, err = self._attachment_with_access(actor, attachment_id, GateAction.EDIT)
        if err:
            return None, err
        key = attachment.file_path
        self.store.delete_attachment(attachment_id)
        self._remove_files([key])
        return True, None

    def _remove_files(self, keys):
        """Drop stored files once their rows are committed away."""
        for key in keys:
            self.storage.remove(key)

    # ── Ledger ───────────────────────────────────────────────────────────

    def approval_history(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return approval_ledger.summarize(self.store.list_history(report_id)), None

    def rejection_reason(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return approval_ledger.latest_rejection_comment(self.store.list_history(report_id)), None

    # ── Comments ─────────────────────────────────────────────────────────

    def list_comments(self, actor: Actor, report_id: int):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        return self.store.list_comments(report_id), None

    def add_comment(self, actor: Actor, report_id: int, content: str):
        _, _, err = self._authorize(actor, report_id, GateAction.VIEW)
        if err:
            return None, err
        content = (content or "").strip() if isinstance(content, str) else content
        err = _check_text("content", content, required=True)
        if err:
            return None, err
        return self.store.add_comment(report_id, actor.id, content), None

    def delete_comment(self, actor: Actor, comment_id: int):
        try:
            comment = self.store.get_comment(comment_id)
        except NotFoundError:
            return None, not_found("ReportComment", comment_id)
        if comment.commenter_id != actor.id:
            err = forbidden("Only the author can delete this comment", Reason.NOT_AUTHOR)
            self._log_denial(actor, comment.daily_report_id, "delete_comment", err)
            return None, err
        self.store.delete_comment(comment_id)
        return True, None
