"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
APPROVAL_LIMIT = "120/minute"


def actor_or_ip_key():
    """Rate limit key: the resolved salesperson if any, else remote IP."""
    actor = getattr(g, "actor", None)
    if actor is not None:
        return f"salesperson:{actor.id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per salesperson, falling back to remote IP):
        - reports / visits:  60/minute   (content + attachment uploads)
        - approvals:         120/minute  (queue polling + decisions)
        - health check:      exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    for bp_name in ("reports", "visits"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=actor_or_ip_key)(bp)

    bp = app.blueprints.get("approvals")
    if bp:
        limiter.limit(APPROVAL_LIMIT, key_func=actor_or_ip_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — reports/visits: %s, approvals: %s",
        WRITE_LIMIT, APPROVAL_LIMIT,
    )
