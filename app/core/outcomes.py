"""
Typed outcomes for the report engine.

Every gate / engine / workflow call returns either a value or a
``ReportError``; denials are values, not exceptions:

    report, err = workflow.approve_report(actor, 1, comment="ok")
    if err:
        return error_response(err)

``ErrorKind`` is the stable taxonomy callers branch on.  ``reason`` is a
finer-grained machine code (e.g. NO_VISITS) used by the UI for messages.
"""

import enum
from dataclasses import dataclass, field


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_STATUS = "invalid_status"
    VALIDATION = "validation"
    CONFLICT = "conflict"


class Reason:
    """Machine-readable reason codes attached to a ReportError."""

    NO_VISITS = "NO_VISITS"
    ALREADY_APPROVED = "ALREADY_APPROVED"
    COMMENT_REQUIRED = "COMMENT_REQUIRED"
    COMMENT_TOO_LONG = "COMMENT_TOO_LONG"
    DUPLICATE_REPORT = "DUPLICATE_REPORT"
    INACTIVE_CUSTOMER = "INACTIVE_CUSTOMER"
    STALE_STATUS = "STALE_STATUS"
    NOT_OWNER = "NOT_OWNER"
    NOT_DIRECT_MANAGER = "NOT_DIRECT_MANAGER"
    NOT_APPROVER = "NOT_APPROVER"
    NOT_AUTHOR = "NOT_AUTHOR"
    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"


@dataclass(frozen=True)
class ReportError:
    kind: ErrorKind
    message: str
    reason: str | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d = {"kind": self.kind.value, "message": self.message}
        if self.reason:
            d["reason"] = self.reason
        if self.details:
            d["details"] = self.details
        return d


def not_found(resource: str, resource_id=None) -> ReportError:
    msg = f"{resource} not found"
    details = {"id": resource_id} if resource_id is not None else {}
    return ReportError(ErrorKind.NOT_FOUND, msg, details=details)


def forbidden(message: str, reason: str | None = None) -> ReportError:
    return ReportError(ErrorKind.FORBIDDEN, message, reason)


def invalid_status(message: str, reason: str | None = None, **details) -> ReportError:
    return ReportError(ErrorKind.INVALID_STATUS, message, reason, details)


def validation(message: str, reason: str | None = None, **details) -> ReportError:
    return ReportError(ErrorKind.VALIDATION, message, reason, details)


def conflict(message: str, reason: str | None = None) -> ReportError:
    return ReportError(ErrorKind.CONFLICT, message, reason)
