"""
Visit Record & Attachment Blueprint.

Routes:
  GET    /api/v1/reports/<id>/visits                 – visits of a report (view rule)
  POST   /api/v1/reports/<id>/visits                 – add visit (edit rule)
         Body: { "customer_id": 1, "visit_time": "HH:MM",
                 "content": "...", "result": "negotiating" }
  PUT    /api/v1/reports/<id>/visits/<vid>           – partial update (edit rule)
  DELETE /api/v1/reports/<id>/visits/<vid>           – delete (edit rule)
  POST   /api/v1/visits/<vid>/attachments            – multipart field "file"
  GET    /api/v1/attachments/<aid>                   – download (view rule)
  DELETE /api/v1/attachments/<aid>                   – delete (edit rule)

Visits and attachments share the report's lock: they can only change while
the parent report is draft or rejected.
"""

import logging
from urllib.parse import quote

from flask import Blueprint, g, jsonify, request, send_file

from app.blueprints import get_workflow, json_body, register_error_handlers
from app.middleware.jwt_auth import require_actor
from app.utils.errors import E, api_error, error_response

logger = logging.getLogger(__name__)

visit_bp = Blueprint("visits", __name__, url_prefix="/api/v1")
register_error_handlers(visit_bp)


# ── Visits ───────────────────────────────────────────────────────────────────


@visit_bp.route("/reports/<int:report_id>/visits", methods=["GET"])
@require_actor
def list_visits(report_id):
    visits, err = get_workflow().list_visits(g.actor, report_id)
    if err:
        return error_response(err)
    return jsonify({"items": [v.to_dict() for v in visits]}), 200


@visit_bp.route("/reports/<int:report_id>/visits", methods=["POST"])
@require_actor
def add_visit(report_id):
    data, err = json_body()
    if err:
        return err
    visit, err = get_workflow().add_visit(g.actor, report_id, data)
    if err:
        return error_response(err)
    return jsonify(visit.to_dict()), 201


@visit_bp.route("/reports/<int:report_id>/visits/<int:visit_id>", methods=["PUT"])
@require_actor
def update_visit(report_id, visit_id):
    data, err = json_body()
    if err:
        return err
    visit, err = get_workflow().update_visit(g.actor, report_id, visit_id, data)
    if err:
        return error_response(err)
    return jsonify(visit.to_dict()), 200


@visit_bp.route("/reports/<int:report_id>/visits/<int:visit_id>", methods=["DELETE"])
@require_actor
def delete_visit(report_id, visit_id):
    _, err = get_workflow().delete_visit(g.actor, report_id, visit_id)
    if err:
        return error_response(err)
    return "", 204


# ── Attachments ──────────────────────────────────────────────────────────────


@visit_bp.route("/visits/<int:visit_id>/attachments", methods=["POST"])
@require_actor
def upload_attachment(visit_id):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return api_error(E.VALIDATION_REQUIRED, "A file is required", details={"field": "file"})

    content = upload.read()
    attachment, err = get_workflow().add_attachment(
        g.actor, visit_id, upload.filename, upload.mimetype, content,
    )
    if err:
        return error_response(err)
    return jsonify(attachment.to_dict()), 201


@visit_bp.route("/attachments/<int:attachment_id>", methods=["GET"])
@require_actor
def download_attachment(attachment_id):
    result, err = get_workflow().get_attachment(g.actor, attachment_id)
    if err:
        return error_response(err)
    attachment, path = result
    response = send_file(path, mimetype=attachment.content_type)
    response.headers["Content-Disposition"] = (
        f"attachment; filename*=UTF-8''{quote(attachment.file_name)}"
    )
    return response


@visit_bp.route("/attachments/<int:attachment_id>", methods=["DELETE"])
@require_actor
def delete_attachment(attachment_id):
    _, err = get_workflow().delete_attachment(g.actor, attachment_id)
    if err:
        return error_response(err)
    return "", 204
