"""Standardised API error responses.

Every error body has the same shape::

    {"error": "<human message>", "code": "ERR_...", ["details": {...}], ...}

Services raise ``core.exceptions``; ``register_error_handlers`` maps each
exception type to its code once for the whole app, so blueprints never
build error responses themselves.

Usage
-----
    from resourcehub.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Sprint not found")
    return api_error(E.CAPACITY_EXCEEDED, msg, total_allocated=110, capacity=100, warning=True)
"""

from __future__ import annotations

import logging

from flask import jsonify, request

from resourcehub.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class E:
    """Machine-readable error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    CAPACITY_EXCEEDED = "ERR_CAPACITY_EXCEEDED"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    INTERNAL = "ERR_INTERNAL"


HTTP_STATUS = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.CAPACITY_EXCEEDED: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None,
              details: dict | None = None, **extra):
    """Build ``(response, status)`` for an error.

    ``status`` overrides the code's default; ``details`` carries a
    field → message breakdown; any ``extra`` keyword lands at the top level
    of the body.
    """
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    body.update(extra)
    return jsonify(body), status or HTTP_STATUS.get(code, 400)


def register_error_handlers(app):
    """Map service exceptions and stray HTTP errors to JSON bodies."""

    @app.errorhandler(ValidationError)
    def _validation(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(CapacityExceededError)
    def _capacity(e):
        return api_error(E.CAPACITY_EXCEEDED, str(e), total_allocated=e.total_allocated,
                         capacity=e.capacity, warning=True)

    @app.errorhandler(NotFoundError)
    def _missing(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ConflictError)
    def _conflict(e):
        return api_error(E.CONFLICT_DUPLICATE, str(e), field=e.field)

    @app.errorhandler(AuthorizationError)
    def _auth(e):
        code = E.UNAUTHORIZED if e.status == 401 else E.FORBIDDEN
        return api_error(code, str(e), status=e.status)

    @app.errorhandler(404)
    def _no_route(e):
        return api_error(E.NOT_FOUND, "Not found", path=request.path)

    @app.errorhandler(405)
    def _bad_method(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", retry_after=e.description)

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("Unhandled error on %s %s: %s", request.method, request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
