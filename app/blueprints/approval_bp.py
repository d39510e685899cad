"""
Approval Blueprint — manager / director decisions on daily reports.

Routes:
  GET    /api/v1/approvals                   – my approval queue (oldest submission first)
                                                Query: page, per_page (≤100)
  POST   /api/v1/reports/<id>/approve        – Body: { "comment": "..." } (optional)
  POST   /api/v1/reports/<id>/reject         – Body: { "comment": "..." } (required)

Which level decides (manager vs director) follows from the caller's
position level; the workflow rejects anything else.
"""

import logging

from flask import Blueprint, g, jsonify

from app.blueprints import get_workflow, json_body, page_args, register_error_handlers
from app.middleware.jwt_auth import require_actor
from app.utils.errors import error_response

logger = logging.getLogger(__name__)

approval_bp = Blueprint("approvals", __name__, url_prefix="/api/v1")
register_error_handlers(approval_bp)


@approval_bp.route("/approvals", methods=["GET"])
@require_actor
def approval_queue():
    page, per_page = page_args()
    result, err = get_workflow().list_approval_queue(g.actor, page=page, per_page=per_page)
    if err:
        return error_response(err)
    return jsonify(result), 200


@approval_bp.route("/reports/<int:report_id>/approve", methods=["POST"])
@require_actor
def approve(report_id):
    data, err = json_body()
    if err:
        return err
    report, err = get_workflow().approve_report(g.actor, report_id, comment=data.get("comment"))
    if err:
        return error_response(err)
    return jsonify(report.to_dict()), 200


@approval_bp.route("/reports/<int:report_id>/reject", methods=["POST"])
@require_actor
def reject(report_id):
    data, err = json_body()
    if err:
        return err
    report, err = get_workflow().reject_report(g.actor, report_id, comment=data.get("comment"))
    if err:
        return error_response(err)
    return jsonify(report.to_dict()), 200
