"""
Request timing middleware.

Every response carries ``X-Request-ID`` (echoed from the caller when
present) and ``X-Request-Duration-Ms``. Each API call is logged once with
the acting user; slow calls and 5xx responses are raised to WARNING/ERROR.
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/api/v1/health"})


def _log_level(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > current_app.config.get("SLOW_REQUEST_MS", 1000):
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):
    """Register the timer hooks on ``app``."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _stamp_response(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        if request.path in _QUIET_PATHS:
            return response

        actor = getattr(g, "current_user", None)
        logger.log(
            _log_level(response.status_code, duration_ms),
            "%s %s -> %d (%.0fms)", request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
                "user_id": actor.id if actor is not None else None,
            },
        )
        return response
