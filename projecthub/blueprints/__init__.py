"""
ProjectHub
Blueprint registry: shared request helpers and the exception → HTTP mapping.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from projecthub.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    DeletedEntityError,
    DownstreamError,
    NotFoundError,
    ValidationError,
)
from projecthub.core.wbs import WbsNumber
from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already-loaded list.

    Query params:
        limit: max items (default 200, capped at max_limit)
        offset: starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def json_body():
    return request.get_json(silent=True) or {}


def parse_wbs(raw):
    """Parse a ``c.p.w`` path segment; a malformed one is a ValidationError."""
    return WbsNumber.parse(raw)


def register_error_handlers(app):
    """Map the service exception hierarchy onto the standard error body."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(DeletedEntityError)
    def _handle_deleted(error):
        return api_error(E.DELETED, str(error))

    @app.errorhandler(AccessDeniedError)
    def _handle_access_denied(error):
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(DownstreamError)
    def _handle_downstream(error):
        logger.error("Downstream failure on %s: %s", request.path, error)
        return api_error(E.DOWNSTREAM, str(error), details={"service": error.service})

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def _too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": str(e.description)})

    @app.errorhandler(Exception)
    def _handle_unexpected(error):
        if isinstance(error, HTTPException):
            return api_error(E.VALIDATION_INVALID, error.description or error.name, status=error.code)
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
