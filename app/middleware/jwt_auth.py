"""
JWT Auth Middleware — resolves the calling salesperson into ``g.actor``.

Flow:
  1. ``Authorization: Bearer <token>`` is decoded (signature, expiry, type).
  2. The salesperson named by ``sub`` is loaded; inactive or missing → no actor.
  3. ``g.actor = Actor(id, position_level)`` using the *current* position
     level from the database, not the level frozen in the token.

Routes that need an actor use ``@require_actor``; it answers
401 ERR_UNAUTHORIZED when ``g.actor`` is None.
"""

import logging
from functools import wraps

import jwt as pyjwt
from flask import g, request

from app.core.actor import Actor
from app.models import db
from app.services.jwt_service import decode_access_token, salesperson_id_from
from app.services.report_store import ReportStore
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def _resolve_actor(token: str):
    try:
        payload = decode_access_token(token)
        salesperson_id = salesperson_id_from(payload)
    except pyjwt.ExpiredSignatureError:
        logger.debug("Expired access token")
        return None
    except pyjwt.InvalidTokenError as exc:
        logger.debug("Invalid access token: %s", exc)
        return None

    person = ReportStore(db.session).get_active_salesperson(salesperson_id)
    if person is None:
        logger.info("Token for unknown or inactive salesperson %s", salesperson_id)
        return None
    return Actor(id=person.id, position_level=person.position_level)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.actor = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        g.actor = _resolve_actor(auth_header[7:])


def require_actor(fn):
    """Reject the request with 401 unless an actor was resolved."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "actor", None) is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return fn(*args, **kwargs)

    return wrapper
