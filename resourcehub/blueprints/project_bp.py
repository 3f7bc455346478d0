"""
ResourceHub
Project & Sprint Blueprint.

Endpoints:
    GET/POST          /api/v1/projects
    GET/PUT/DELETE    /api/v1/projects/<id>
    GET               /api/v1/projects/<id>/health
    GET/POST          /api/v1/projects/<project_id>/sprints
    GET/PUT/DELETE    /api/v1/sprints/<id>
    GET               /api/v1/sprints/<id>/status
"""

import logging

from flask import Blueprint, jsonify, request

from resourcehub.blueprints import json_body, page_args
from resourcehub.middleware.permission_required import (
    current_user, current_user_id, require_auth, require_role,
)
from resourcehub.services import project_service, sprint_service

logger = logging.getLogger(__name__)

project_bp = Blueprint("project_bp", __name__, url_prefix="/api/v1")


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
@require_auth
def list_projects():
    projects = project_service.list_projects(
        status=request.args.get("status"),
        client=request.args.get("client"),
        search=request.args.get("search"),
    )
    return jsonify({"data": [p.to_dict() for p in projects], "total": len(projects)})


@project_bp.route("/projects", methods=["POST"])
@require_role("PM", "Admin")
def create_project():
    project = project_service.create_project(json_body(), user_id=current_user_id())
    return jsonify({"data": project.to_dict()}), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
@require_auth
def get_project(project_id):
    project = project_service.get_project(project_id)
    return jsonify({"data": project.to_dict(include_sprints=True)})


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
@require_auth
def update_project(project_id):
    project = project_service.update_project(project_id, json_body(), user=current_user())
    return jsonify({"data": project.to_dict()})


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@require_auth
def delete_project(project_id):
    project_service.delete_project(project_id, user=current_user())
    return jsonify({"deleted": True, "id": project_id})


@project_bp.route("/projects/<int:project_id>/health", methods=["GET"])
@require_auth
def project_health(project_id):
    return jsonify({"data": project_service.get_project_health(project_id)})


# ═════════════════════════════════════════════════════════════════════════════
# SPRINTS
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<int:project_id>/sprints", methods=["GET"])
@require_auth
def list_sprints(project_id):
    page, limit = page_args()
    result = sprint_service.list_sprints(
        project_id, status=request.args.get("status"), page=page, limit=limit,
    )
    return jsonify({
        "data": [s.to_dict() for s in result["items"]],
        "total": result["total"],
        "page": result["page"],
        "pages": result["pages"],
    })


@project_bp.route("/projects/<int:project_id>/sprints", methods=["POST"])
@require_role("PM", "Admin")
def create_sprint(project_id):
    sprint = sprint_service.create_sprint(project_id, json_body())
    return jsonify({"data": sprint.to_dict()}), 201


@project_bp.route("/sprints/<int:sprint_id>", methods=["GET"])
@require_auth
def get_sprint(sprint_id):
    sprint = sprint_service.get_sprint(sprint_id)
    data = sprint.to_dict()
    data["status"] = sprint_service.get_sprint_status(sprint_id)["status"]
    return jsonify({"data": data})


@project_bp.route("/sprints/<int:sprint_id>", methods=["PUT"])
@require_role("PM", "Admin")
def update_sprint(sprint_id):
    sprint = sprint_service.update_sprint(sprint_id, json_body())
    return jsonify({"data": sprint.to_dict()})


@project_bp.route("/sprints/<int:sprint_id>", methods=["DELETE"])
@require_role("PM", "Admin")
def delete_sprint(sprint_id):
    sprint_service.delete_sprint(sprint_id)
    return jsonify({"deleted": True, "id": sprint_id})


@project_bp.route("/sprints/<int:sprint_id>/status", methods=["GET"])
@require_auth
def sprint_status(sprint_id):
    return jsonify({"data": sprint_service.get_sprint_status(sprint_id)})
