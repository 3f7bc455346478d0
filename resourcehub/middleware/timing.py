"""
Per-request id and duration.

Each request gets ``g.request_id`` (the caller's X-Request-ID when given)
and is echoed back with X-Request-ID / X-Request-Duration-Ms headers. One
access-log line is written per API call: WARNING when slower than
SLOW_REQUEST_MS, ERROR on 5xx, DEBUG otherwise. Probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000
UNLOGGED_PATHS = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})


def _access_level(status_code, elapsed_ms):
    if elapsed_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    if status_code >= 500:
        return logging.ERROR
    return logging.DEBUG


def init_request_timing(app: Flask):
    @app.before_request
    def _stamp():
        g.started_at = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish(response):
        started = getattr(g, "started_at", None)
        if started is None:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"
        if request.path in UNLOGGED_PATHS:
            return response

        user = getattr(g, "current_user", None)
        logger.log(
            _access_level(response.status_code, elapsed_ms),
            "%s %s -> %d", request.method, request.path, response.status_code,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
                "user_id": user.id if user is not None else None,
                "project_id": (request.view_args or {}).get("project_id"),
            },
        )
        return response
