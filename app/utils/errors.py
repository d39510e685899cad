"""Standardised API error responses.

Usage
-----
    from app.utils.errors import api_error, error_response, E

    return api_error(E.NOT_FOUND, "Report not found")
    return api_error(E.VALIDATION_REQUIRED, "report_date is required")

    report, err = workflow.submit_report(g.actor, report_id)
    if err:
        return error_response(err)
"""

from __future__ import annotations

from flask import jsonify

from app.core.outcomes import ErrorKind, Reason, ReportError


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Malformed request – HTTP 400
    BAD_REQUEST = "ERR_BAD_REQUEST"

    # Authentication – HTTP 401
    UNAUTHORIZED = "ERR_UNAUTHORIZED"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"
    INVALID_STATUS = "ERR_INVALID_STATUS"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Attachments – HTTP 413 / 415
    FILE_TOO_LARGE = "ERR_FILE_TOO_LARGE"
    UNSUPPORTED_FILE_TYPE = "ERR_UNSUPPORTED_FILE_TYPE"

    # Throttling – HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Validation – HTTP 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.BAD_REQUEST: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.INVALID_STATUS: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.FILE_TOO_LARGE: 413,
    E.UNSUPPORTED_FILE_TYPE: 415,
    E.VALIDATION_REQUIRED: 422,
    E.VALIDATION_INVALID: 422,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

_KIND_CODES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: E.NOT_FOUND,
    ErrorKind.FORBIDDEN: E.FORBIDDEN,
    ErrorKind.INVALID_STATUS: E.INVALID_STATUS,
    ErrorKind.VALIDATION: E.VALIDATION_INVALID,
    ErrorKind.CONFLICT: E.CONFLICT_DUPLICATE,
}

_REASON_CODES: dict[str, str] = {
    Reason.FILE_TOO_LARGE: E.FILE_TOO_LARGE,
    Reason.UNSUPPORTED_FILE_TYPE: E.UNSUPPORTED_FILE_TYPE,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (reason code, offending field, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def error_response(err: ReportError):
    """Render a workflow ``ReportError`` with its kind → HTTP mapping."""
    code = _REASON_CODES.get(err.reason) or _KIND_CODES[err.kind]
    details = dict(err.details)
    if err.reason:
        details["reason"] = err.reason
    return api_error(code, err.message, details=details or None)
