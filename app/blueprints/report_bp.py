"""
Daily Report Blueprint.

Endpoints:
    GET    /api/v1/reports                      visibility-scoped list
           Query: page, per_page, date_from, date_to, status, salesperson_id,
                  sort (report_date|created_at|updated_at), order (asc|desc)
    POST   /api/v1/reports                      create (always draft)
           Body: { "report_date": "YYYY-MM-DD", "problem", "plan",
                   "visits": [{customer_id, visit_time, content, result}] }
    GET    /api/v1/reports/<id>                 detail + visits + history
    PUT    /api/v1/reports/<id>                 update problem / plan
    DELETE /api/v1/reports/<id>                 draft only, owner only
    POST   /api/v1/reports/<id>/submit
    POST   /api/v1/reports/<id>/withdraw
    GET    /api/v1/reports/<id>/history         audit trail + rejection reason
    GET    /api/v1/reports/<id>/comments
    POST   /api/v1/reports/<id>/comments        Body: { "content": "..." }
    DELETE /api/v1/comments/<id>                author only

Layer contract:
    - Blueprint: parse input, call ReportWorkflow, render result.
    - NO db.session calls and NO permission checks here.
"""

import logging

from flask import Blueprint, g, jsonify, request

from app.blueprints import get_workflow, json_body, page_args, register_error_handlers
from app.middleware.jwt_auth import require_actor
from app.models.daily_report import ReportStatus
from app.utils.errors import E, api_error, error_response
from app.utils.helpers import parse_date, parse_date_input

logger = logging.getLogger(__name__)

report_bp = Blueprint("reports", __name__, url_prefix="/api/v1")
register_error_handlers(report_bp)


def _detail(workflow, report):
    data = report.to_dict()
    actions, _ = workflow.available_actions(g.actor, report.id)
    data["available_actions"] = actions or []
    return data


# ── Reports ──────────────────────────────────────────────────────────────────


@report_bp.route("/reports", methods=["GET"])
@require_actor
def list_reports():
    filters = {
        "date_from": parse_date(request.args.get("date_from")),
        "date_to": parse_date(request.args.get("date_to")),
        "salesperson_id": request.args.get("salesperson_id", type=int),
        "sort": request.args.get("sort", "report_date"),
        "order": request.args.get("order", "desc"),
    }
    status = request.args.get("status")
    if status:
        try:
            filters["status"] = ReportStatus(status)
        except ValueError:
            return api_error(
                E.VALIDATION_INVALID, f"Invalid status: {status}",
                details={"allowed": [s.value for s in ReportStatus]},
            )
    filters = {k: v for k, v in filters.items() if v is not None}

    page, per_page = page_args()
    result, err = get_workflow().list_reports(g.actor, filters, page=page, per_page=per_page)
    if err:
        return error_response(err)
    return jsonify(result), 200


@report_bp.route("/reports", methods=["POST"])
@require_actor
def create_report():
    data, err = json_body()
    if err:
        return err
    try:
        report_date = parse_date_input(data.get("report_date"))
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc), details={"field": "report_date"})
    if report_date is None:
        return api_error(E.VALIDATION_REQUIRED, "report_date is required")

    visits = data.get("visits") or []
    if not isinstance(visits, list):
        return api_error(E.VALIDATION_INVALID, "visits must be a list")

    workflow = get_workflow()
    report, err = workflow.create_report(
        g.actor, report_date,
        problem=data.get("problem"), plan=data.get("plan"), visits=visits,
    )
    if err:
        return error_response(err)
    return jsonify(_detail(workflow, report)), 201


@report_bp.route("/reports/<int:report_id>", methods=["GET"])
@require_actor
def get_report(report_id):
    workflow = get_workflow()
    report, err = workflow.get_report(g.actor, report_id)
    if err:
        return error_response(err)
    data = _detail(workflow, report)
    reason, _ = workflow.rejection_reason(g.actor, report_id)
    data["rejection_reason"] = reason
    return jsonify(data), 200


@report_bp.route("/reports/<int:report_id>", methods=["PUT"])
@require_actor
def update_report(report_id):
    data, err = json_body()
    if err:
        return err
    workflow = get_workflow()
    report, err = workflow.update_report(g.actor, report_id, data)
    if err:
        return error_response(err)
    return jsonify(_detail(workflow, report)), 200


@report_bp.route("/reports/<int:report_id>", methods=["DELETE"])
@require_actor
def delete_report(report_id):
    _, err = get_workflow().delete_report(g.actor, report_id)
    if err:
        return error_response(err)
    return "", 204


# ── Transitions (owner) ──────────────────────────────────────────────────────


@report_bp.route("/reports/<int:report_id>/submit", methods=["POST"])
@require_actor
def submit_report(report_id):
    workflow = get_workflow()
    report, err = workflow.submit_report(g.actor, report_id)
    if err:
        return error_response(err)
    return jsonify(_detail(workflow, report)), 200


@report_bp.route("/reports/<int:report_id>/withdraw", methods=["POST"])
@require_actor
def withdraw_report(report_id):
    workflow = get_workflow()
    report, err = workflow.withdraw_report(g.actor, report_id)
    if err:
        return error_response(err)
    return jsonify(_detail(workflow, report)), 200


# ── Ledger ───────────────────────────────────────────────────────────────────


@report_bp.route("/reports/<int:report_id>/history", methods=["GET"])
@require_actor
def report_history(report_id):
    result, err = get_workflow().approval_history(g.actor, report_id)
    if err:
        return error_response(err)
    return jsonify(result), 200


# ── Comments ─────────────────────────────────────────────────────────────────


@report_bp.route("/reports/<int:report_id>/comments", methods=["GET"])
@require_actor
def list_comments(report_id):
    comments, err = get_workflow().list_comments(g.actor, report_id)
    if err:
        return error_response(err)
    return jsonify({"items": [c.to_dict() for c in comments]}), 200


@report_bp.route("/reports/<int:report_id>/comments", methods=["POST"])
@require_actor
def add_comment(report_id):
    data, err = json_body()
    if err:
        return err
    comment, err = get_workflow().add_comment(g.actor, report_id, data.get("content"))
    if err:
        return error_response(err)
    return jsonify(comment.to_dict()), 201


@report_bp.route("/comments/<int:comment_id>", methods=["DELETE"])
@require_actor
def delete_comment(comment_id):
    _, err = get_workflow().delete_comment(g.actor, comment_id)
    if err:
        return error_response(err)
    return "", 204
