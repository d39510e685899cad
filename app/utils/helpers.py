"""Shared parsing helpers for request payloads and query strings.

parse_date:        lenient, returns None on bad input (query-string filters)
parse_date_input:  strict, raises ValueError (request bodies)
parse_time_input:  strict HH:MM, raises ValueError
parse_int_arg:     bounded integer query args (page, per_page)
"""
import logging
import re
from datetime import date, datetime, time

logger = logging.getLogger(__name__)

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_date(value):
    """Parse a date string (ISO) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value):
    """Parse a YYYY-MM-DD date, raising ValueError on bad input."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


def parse_time_input(value):
    """Parse an HH:MM visit time, raising ValueError on bad input."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    match = _HHMM.match(str(value))
    if not match:
        raise ValueError("Invalid time format. Use HH:MM.")
    return time(int(match.group(1)), int(match.group(2)))


def parse_int_arg(value, default, minimum=1, maximum=None):
    """Coerce a query-string integer, clamping into [minimum, maximum]."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(minimum, number)
    if maximum is not None:
        number = min(number, maximum)
    return number
