"""
Permission Decorators: JWT-aware role checks for route protection.

Usage:
    @bp.route("/sprints/<int:sprint_id>/health", methods=["POST"])
    @require_role("PM", "Admin", "TeamLead")
    def create_health(sprint_id):
        ...

    @bp.route("/alerts", methods=["GET"])
    @require_auth
    def list_alerts():
        ...

When ``API_AUTH_ENABLED`` is false (development / testing default), both
decorators pass through and ``g.current_user`` may be ``None``.
"""

import functools
import logging

from flask import current_app, g

from resourcehub.core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def auth_enabled() -> bool:
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() in ("1", "true", "yes")


def current_user():
    return getattr(g, "current_user", None)


def current_user_id():
    user = current_user()
    return user.id if user is not None else None


def _authenticated_user():
    user = current_user()
    if user is None:
        raise AuthorizationError(getattr(g, "token_error", None) or "Unauthorized", status=401)
    return user


def require_auth(f):
    """Decorator: require a valid bearer token."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if auth_enabled():
            _authenticated_user()
        return f(*args, **kwargs)
    return decorated


def require_role(*roles: str):
    """
    Decorator: require the authenticated user to hold one of ``roles``.

    401 without a valid token, 403 with a token of another role.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            if auth_enabled():
                user = _authenticated_user()
                if user.role not in roles:
                    logger.warning(
                        "User %d denied: role %s not in %s on %s",
                        user.id, user.role, roles, f.__name__,
                    )
                    raise AuthorizationError("Permission denied", status=403)
            return f(*args, **kwargs)
        return decorated
    return decorator
