"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in ``projecthub/__init__.py`` with no default limits; this module
splits every API blueprint into a write limit (POST/PUT/PATCH/DELETE) and a
read limit (GET).

Usage:
    from projecthub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

API_BLUEPRINTS = (
    "users", "teams", "projects", "work_packages",
    "change_requests", "risks", "reimbursement",
)

_WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]


def init_rate_limits(app, limiter):
    """Apply write/read limits to the API blueprints.

    Limits (per remote IP) come from RATELIMIT_WRITE and RATELIMIT_READ.
    Disabled in testing mode or when RATELIMIT_ENABLED is false.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    write_limit = app.config.get("RATELIMIT_WRITE", "60/minute")
    read_limit = app.config.get("RATELIMIT_READ", "200/minute")
    for bp_name in API_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(write_limit, methods=_WRITE_METHODS)(bp)
            limiter.limit(read_limit, methods=["GET"])(bp)

    app.logger.info("Rate limiter configured: write %s, read %s", write_limit, read_limit)
