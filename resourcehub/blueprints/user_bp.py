"""
ResourceHub
User administration Blueprint (Admin only).

Endpoints:
    GET    /api/v1/users                 list (?role=&search=)
    PUT    /api/v1/users/<id>/role       change role
    DELETE /api/v1/users/<id>            delete (not self)
"""

from flask import Blueprint, jsonify, request

from resourcehub.blueprints import json_body
from resourcehub.middleware.permission_required import current_user_id, require_role
from resourcehub.services import user_service

user_bp = Blueprint("user_bp", __name__, url_prefix="/api/v1")


@user_bp.route("/users", methods=["GET"])
@require_role("Admin")
def list_users():
    users = user_service.list_users(role=request.args.get("role"), search=request.args.get("search"))
    return jsonify({"data": [u.to_dict() for u in users]})


@user_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@require_role("Admin")
def change_role(user_id):
    user = user_service.change_role(user_id, json_body().get("role"), acting_user_id=current_user_id())
    return jsonify({"data": user.to_dict()})


@user_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_role("Admin")
def delete_user(user_id):
    user_service.delete_user(user_id, acting_user_id=current_user_id())
    return jsonify({"deleted": True, "id": user_id})
