"""
Persistence-boundary exception types.

The report store raises these; the workflow layer converts them into
``ReportError`` result values (see app.core.outcomes) so that callers of the
engine never have to catch exceptions for business-rule denials.

Anything else escaping the store (SQLAlchemyError, OSError ...) is an
unexpected failure and is rendered as an opaque 500 — never as a denial.

Usage:
    from app.core.exceptions import NotFoundError, ConflictError

    raise NotFoundError(resource="DailyReport", resource_id=42)
    raise ConflictError("DailyReport", "report_date", "2026-10-19")
"""


class NotFoundError(Exception):
    """Raised when a requested report, visit, attachment or comment does not exist.

    Args:
        resource: Human-readable entity name (e.g. "DailyReport", "VisitRecord").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ConflictError(Exception):
    """Raised when a write collides with existing state.

    Two uses:
    - unique constraint, e.g. a second report for the same (salesperson, date)
    - conditional status update that matched no row (another writer won)

    Args:
        resource: Model name.
        field: The unique / guarded field.
        value: The conflicting or expected value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} conflicts with current state"
        super().__init__(msg)
