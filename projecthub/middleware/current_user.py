"""
Acting-user resolution.

Every ``/api/`` request except the health probe must carry an ``X-User-Id``
header naming an existing user. The resolved User is stored on
``g.current_user`` for blueprints to pass into services.

Usage:
    from projecthub.middleware.current_user import get_current_user

    user = get_current_user()
"""

import logging

from flask import Flask, g, request

from projecthub.models import db
from projecthub.models.user import User
from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_PUBLIC_PATHS = frozenset({"/api/v1/health"})


def init_current_user(app: Flask):
    """Register the before_request hook that resolves ``g.current_user``."""

    @app.before_request
    def _resolve_current_user():
        g.current_user = None
        if not request.path.startswith("/api/") or request.path in _PUBLIC_PATHS:
            return None

        raw = request.headers.get("X-User-Id", "").strip()
        if not raw:
            return api_error(E.UNAUTHORIZED, "Authentication required. Provide X-User-Id header.")
        try:
            user_id = int(raw)
        except ValueError:
            return api_error(E.UNAUTHORIZED, "Invalid X-User-Id header")

        user = db.session.get(User, user_id)
        if user is None:
            logger.warning("Unknown user id %s on %s %s", user_id, request.method, request.path)
            return api_error(E.UNAUTHORIZED, "Unknown user")
        g.current_user = user
        return None


def get_current_user() -> User:
    return g.current_user
