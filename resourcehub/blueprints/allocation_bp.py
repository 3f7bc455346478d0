"""
ResourceHub
Resource Allocation Blueprint.

Endpoints:
    GET    /api/v1/allocations              list (?resource_id=&project_id=)
    POST   /api/v1/allocations              create, capacity-checked (PM/Admin)
    PUT    /api/v1/allocations/<id>         update, capacity-checked (PM/Admin)
    DELETE /api/v1/allocations/<id>         delete (PM/Admin)
    GET    /api/v1/allocations/conflicts    over-committed groups of live allocations
"""

from flask import Blueprint, jsonify, request

from resourcehub.blueprints import json_body
from resourcehub.middleware.permission_required import require_auth, require_role
from resourcehub.services import allocation_service

allocation_bp = Blueprint("allocation_bp", __name__, url_prefix="/api/v1")


@allocation_bp.route("/allocations", methods=["GET"])
@require_auth
def list_allocations():
    items = allocation_service.list_allocations(
        resource_id=request.args.get("resource_id", type=int),
        project_id=request.args.get("project_id", type=int),
    )
    return jsonify({"data": [a.to_dict() for a in items], "total": len(items)})


@allocation_bp.route("/allocations", methods=["POST"])
@require_role("PM", "Admin")
def create_allocation():
    alloc = allocation_service.create_allocation(json_body())
    return jsonify({"data": alloc.to_dict()}), 201


@allocation_bp.route("/allocations/<int:allocation_id>", methods=["PUT"])
@require_role("PM", "Admin")
def update_allocation(allocation_id):
    alloc = allocation_service.update_allocation(allocation_id, json_body())
    return jsonify({"data": alloc.to_dict()})


@allocation_bp.route("/allocations/<int:allocation_id>", methods=["DELETE"])
@require_role("PM", "Admin")
def delete_allocation(allocation_id):
    allocation_service.delete_allocation(allocation_id)
    return jsonify({"deleted": True, "id": allocation_id})


@allocation_bp.route("/allocations/conflicts", methods=["GET"])
@require_auth
def allocation_conflicts():
    conflicts = allocation_service.conflict_report()
    return jsonify({"data": conflicts, "count": len(conflicts)})
