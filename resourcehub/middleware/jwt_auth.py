"""
Bearer-token parsing.

Runs before every /api/v1/ request and resolves ``g.current_user`` from an
``Authorization: Bearer <token>`` header. It never rejects anything: a
missing or bad token leaves ``g.current_user`` as None and records the
reason in ``g.token_error`` for the decorators in ``permission_required``.
"""

import logging

import jwt as pyjwt
from flask import g, request

from resourcehub.models import db
from resourcehub.models.auth import User
from resourcehub.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

PUBLIC_PREFIXES = ("/api/v1/auth/login", "/api/v1/health")


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token.strip()


def _user_from_token(token):
    """Return ``(user, error)``; exactly one of them is None."""
    try:
        claims = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        return None, "Token expired"
    except pyjwt.InvalidTokenError:
        return None, "Invalid token"

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None, "Invalid token"

    user = db.session.get(User, user_id)
    if user is None:
        logger.info("Token for unknown user sub=%s", user_id)
        return None, "Unknown user"
    return user, None


def init_jwt_middleware(app):
    @app.before_request
    def _load_current_user():
        g.current_user = None
        g.token_error = None

        path = request.path
        if not path.startswith("/api/v1/") or path.startswith(PUBLIC_PREFIXES):
            return

        token = _bearer_token()
        if token is not None:
            g.current_user, g.token_error = _user_from_token(token)
