"""
Access tokens for the ResourceHub API.

Tokens are HS256-signed with JWT_SECRET_KEY (SECRET_KEY when unset) and
live JWT_ACCESS_EXPIRES seconds. Claims:

    sub   user id as a string
    role  Admin | PM | TeamLead | Stakeholder at issue time
    type  always "access"
    iat / exp / jti
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def _signing_key():
    cfg = current_app.config
    return cfg.get("JWT_SECRET_KEY") or cfg["SECRET_KEY"]


def _lifetime_seconds():
    return int(current_app.config.get("JWT_ACCESS_EXPIRES", 3600))


def generate_access_token(user_id: int, role: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued,
        "exp": issued + timedelta(seconds=_lifetime_seconds()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def token_response(user) -> dict:
    """Body returned by register and login."""
    return {
        "access_token": generate_access_token(user.id, user.role),
        "token_type": "Bearer",
        "expires_in": _lifetime_seconds(),
        "user": user.to_dict(),
    }


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry and return the claims.

    Raises ``jwt.InvalidTokenError`` (or a subclass such as
    ``ExpiredSignatureError``) for anything that is not a valid access token.
    """
    claims = jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
    if claims.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"Unexpected token type: {claims.get('type')!r}")
    return claims
