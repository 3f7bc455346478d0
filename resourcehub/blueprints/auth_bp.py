"""
ResourceHub
Auth Blueprint.

Endpoints:
    POST /api/v1/auth/register   create account, returns access token;
                                 roles above Stakeholder need an Admin token
    POST /api/v1/auth/login      email + password, returns access token
    GET  /api/v1/auth/me         the authenticated user
"""

from flask import Blueprint, jsonify

from resourcehub.blueprints import json_body
from resourcehub.core.exceptions import AuthorizationError
from resourcehub.middleware.permission_required import auth_enabled, current_user
from resourcehub.services import user_service
from resourcehub.services.jwt_service import token_response

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")


@auth_bp.route("/register", methods=["POST"])
def register():
    caller = current_user()
    may_assign_role = not auth_enabled() or (caller is not None and caller.role == "Admin")
    user = user_service.register(json_body(), may_assign_role=may_assign_role)
    return jsonify(token_response(user)), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = user_service.authenticate(data.get("email"), data.get("password"))
    return jsonify(token_response(user))


@auth_bp.route("/me", methods=["GET"])
def me():
    user = current_user()
    if user is None:
        raise AuthorizationError("Unauthorized", status=401)
    return jsonify({"user": user.to_dict()})
