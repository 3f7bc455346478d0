"""
ResourceHub
Resource Blueprint.

Endpoints:
    GET/POST          /api/v1/resources
    GET/PUT/DELETE    /api/v1/resources/<id>
    GET               /api/v1/resources/available?start_date=&end_date=&min_availability=
    GET               /api/v1/resources/utilization?start_date=&end_date=
    GET               /api/v1/resources/<id>/allocations
"""

from flask import Blueprint, jsonify, request

from resourcehub.blueprints import json_body
from resourcehub.middleware.permission_required import require_auth, require_role
from resourcehub.services import resource_service
from resourcehub.utils.helpers import parse_date

resource_bp = Blueprint("resource_bp", __name__, url_prefix="/api/v1")


@resource_bp.route("/resources", methods=["GET"])
@require_auth
def list_resources():
    items = resource_service.list_resources(
        role=request.args.get("role"),
        search=request.args.get("search"),
        min_availability=request.args.get("min_availability", type=int),
    )
    return jsonify({"data": [r.to_dict() for r in items], "total": len(items)})


@resource_bp.route("/resources", methods=["POST"])
@require_role("PM", "Admin")
def create_resource():
    resource = resource_service.create_resource(json_body())
    return jsonify({"data": resource.to_dict()}), 201


@resource_bp.route("/resources/available", methods=["GET"])
@require_auth
def available_resources():
    data = resource_service.available_resources(
        parse_date(request.args.get("start_date")),
        parse_date(request.args.get("end_date")),
        min_availability=request.args.get("min_availability", 0, type=int),
    )
    return jsonify({"data": data})


@resource_bp.route("/resources/utilization", methods=["GET"])
@require_auth
def utilization():
    data = resource_service.utilization(
        parse_date(request.args.get("start_date")),
        parse_date(request.args.get("end_date")),
    )
    return jsonify({"data": data})


@resource_bp.route("/resources/<int:resource_id>", methods=["GET"])
@require_auth
def get_resource(resource_id):
    return jsonify({"data": resource_service.get_resource(resource_id).to_dict()})


@resource_bp.route("/resources/<int:resource_id>", methods=["PUT"])
@require_role("PM", "Admin")
def update_resource(resource_id):
    resource = resource_service.update_resource(resource_id, json_body())
    return jsonify({"data": resource.to_dict()})


@resource_bp.route("/resources/<int:resource_id>", methods=["DELETE"])
@require_role("Admin")
def delete_resource(resource_id):
    resource_service.delete_resource(resource_id)
    return jsonify({"deleted": True, "id": resource_id})


@resource_bp.route("/resources/<int:resource_id>/allocations", methods=["GET"])
@require_auth
def resource_allocations(resource_id):
    items = resource_service.resource_allocations(resource_id)
    return jsonify({"data": [a.to_dict() for a in items]})
