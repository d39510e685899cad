"""
Sales Daily Report
Blueprint registry and shared route helpers.
"""

import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from app.core.exceptions import ConflictError, NotFoundError
from app.models import db
from app.services.attachment_storage import AttachmentStorage
from app.services.report_store import ReportStore
from app.services.report_workflow import ReportWorkflow
from app.utils.errors import E, api_error
from app.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)


def get_workflow() -> ReportWorkflow:
    """Workflow bound to the request's session and the configured upload folder."""
    cfg = current_app.config
    return ReportWorkflow(
        ReportStore(db.session),
        storage=AttachmentStorage(cfg["UPLOAD_FOLDER"]),
        max_attachment_size=cfg["MAX_ATTACHMENT_SIZE"],
    )


def page_args(default_size=None):
    """(page, per_page) from the query string, per_page capped at MAX_PAGE_SIZE."""
    cfg = current_app.config
    default_size = default_size or cfg.get("APPROVAL_PAGE_SIZE", 20)
    page = parse_int_arg(request.args.get("page"), 1)
    per_page = parse_int_arg(
        request.args.get("per_page"), default_size, maximum=cfg.get("MAX_PAGE_SIZE", 100),
    )
    return page, per_page


def json_body():
    """Request JSON object, or ({}, error) when the body is not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return None, api_error(E.BAD_REQUEST, "Request body must be a JSON object")
    return data, None


def register_error_handlers(bp):
    """Blueprint-level handlers for exceptions that escape the workflow."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return jsonify({"error": "Internal server error", "code": E.INTERNAL}), 500
