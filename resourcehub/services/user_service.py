"""User registration, login and administration."""

from __future__ import annotations

import logging
import re

from sqlalchemy import or_

from resourcehub.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.auth import USER_ROLES, User
from resourcehub.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


SELF_SERVICE_ROLE = "Stakeholder"


def register(data: dict, may_assign_role: bool = False) -> User:
    """Create a user. Role defaults to Stakeholder.

    Any other role needs ``may_assign_role``; the auth blueprint grants it to
    Admin callers only, everyone else is promoted later through
    ``change_role``.

    Raises:
        ValidationError:    missing name/email/password, bad email, short password, bad role.
        AuthorizationError: a role other than Stakeholder without ``may_assign_role`` (403).
        ConflictError:      email already registered.
    """
    name = str(data.get("name") or "").strip()
    email = str(data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role = data.get("role") or SELF_SERVICE_ROLE

    errors: dict[str, str] = {}
    if not name:
        errors["name"] = "name is required"
    if not EMAIL_RE.match(email):
        errors["email"] = "A valid email is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"password must be at least {MIN_PASSWORD_LENGTH} characters"
    if role not in USER_ROLES:
        errors["role"] = "Invalid role"
    if errors:
        raise ValidationError("Validation failed", details=errors)
    if role != SELF_SERVICE_ROLE and not may_assign_role:
        logger.warning("Self-registration with role=%s refused for email=%s", role, email)
        raise AuthorizationError(f"Only an Admin can register a {role} account", status=403)

    if User.query.filter_by(email=email).first():
        raise ConflictError("User", "email", email, message="Email already in use")

    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.session.add(user)
    db.session.commit()
    logger.info("User registered id=%s role=%s", user.id, user.role)
    return user


def authenticate(email: str, password: str) -> User:
    """Return the user whose credentials match, else raise a 401 AuthorizationError."""
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for email=%s", email)
        raise AuthorizationError("Invalid credentials", status=401)
    return user


def list_users(role=None, search=None) -> list[User]:
    q = User.query
    if role:
        q = q.filter(User.role == role)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    return q.order_by(User.created_at.desc(), User.id.desc()).all()


def change_role(user_id: int, role: str, acting_user_id: int | None = None) -> User:
    if acting_user_id is not None and acting_user_id == user_id:
        raise ValidationError("Cannot change own role")
    if role not in USER_ROLES:
        raise ValidationError("Invalid role", details={"role": f"must be one of: {', '.join(sorted(USER_ROLES))}"})
    user = get_user(user_id)
    user.role = role
    db.session.commit()
    logger.info("User role changed id=%s role=%s by=%s", user_id, role, acting_user_id)
    return user


def delete_user(user_id: int, acting_user_id: int | None = None) -> None:
    if acting_user_id is not None and acting_user_id == user_id:
        raise ValidationError("Cannot delete own account")
    user = get_user(user_id)
    db.session.delete(user)
    db.session.commit()
    logger.info("User deleted id=%s by=%s", user_id, acting_user_id)
