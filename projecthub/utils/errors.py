"""Standard JSON error bodies for the ProjectHub API.

Every error response has the shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty. Blueprints never build error bodies by
hand; domain exceptions reach ``register_error_handlers`` and come back
through ``api_error``.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    # 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    DELETED = "ERR_DELETED"

    # 401 / 403 / 404 / 405
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"

    # 409 / 413 / 429
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # 5xx
    INTERNAL = "ERR_INTERNAL"
    DOWNSTREAM = "ERR_DOWNSTREAM"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.DELETED: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
    E.DOWNSTREAM: 502,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for an error.

    ``status`` defaults to the code's entry in ``STATUS_FOR_CODE`` (400 for
    unknown codes). ``details`` carries structured context such as the
    missing request fields or the unchecked bullet category.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_FOR_CODE.get(code, 400)
