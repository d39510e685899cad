"""
Logging setup for the report service.

Two kinds of context ride on log records through ``extra=``:

  request  method, path, status, duration_ms, request_id   (timing middleware)
  report   report_id, action, actor_id, error_kind          (ReportWorkflow)

Production writes one JSON object per line with the report context nested
under ``"report"``; development prints a single readable line such as::

    10:02:11 INFO  report#12 approve by #3  Report 12 manager_approve: ...
"""

import json
import logging
import sys
from datetime import datetime, timezone

REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "request_id")
REPORT_FIELDS = ("report_id", "action", "actor_id", "error_kind")


def _context(record: logging.LogRecord, fields) -> dict:
    return {
        key: getattr(record, key)
        for key in fields
        if getattr(record, key, None) is not None
    }


def report_tag(record: logging.LogRecord) -> str:
    """Short ``report#12 approve by #3 [forbidden]`` tag, empty without report context."""
    ctx = _context(record, REPORT_FIELDS)
    if not ctx:
        return ""
    parts = []
    if "report_id" in ctx:
        parts.append(f"report#{ctx['report_id']}")
    if "action" in ctx:
        parts.append(str(ctx["action"]))
    if "actor_id" in ctx:
        parts.append(f"by #{ctx['actor_id']}")
    if "error_kind" in ctx:
        parts.append(f"[{ctx['error_kind']}]")
    return " ".join(parts)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context(record, REQUEST_FIELDS))
        report = _context(record, REPORT_FIELDS)
        if report:
            entry["report"] = report
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    LEVEL_COLORS = {
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<5}"
        if self.color and record.levelname in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelname]}{level}{self.RESET}"
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = report_tag(record)
        line = f"{ts} {level} {tag + '  ' if tag else ''}{record.getMessage()}"
        if getattr(record, "duration_ms", None) is not None:
            line += f" [{record.duration_ms:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger.

    JSON when neither DEBUG nor TESTING is set, readable otherwise.  The
    level comes from ``LOG_LEVEL`` (INFO in production, DEBUG elsewhere).
    Calling it again replaces the handler it installed before.
    """
    is_prod = not app.config.get("DEBUG") and not app.config.get("TESTING")
    level_name = (app.config.get("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter(color=sys.stderr.isatty()))
    handler._report_service = True

    root = logging.getLogger()
    for old in [h for h in root.handlers if getattr(h, "_report_service", False)]:
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)
    return handler
