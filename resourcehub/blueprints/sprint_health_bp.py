"""
ResourceHub
Sprint Health Blueprint.

Endpoints:
    POST /api/v1/sprints/<id>/health           record health (PM/Admin/TeamLead)
    PUT  /api/v1/sprints/<id>/health           update health (PM/Admin/TeamLead)
    GET  /api/v1/sprints/<id>/health           record + previous + trend
    GET  /api/v1/sprints/<id>/health/history   project history up to this sprint
"""

import logging

from flask import Blueprint, jsonify

from resourcehub.blueprints import json_body
from resourcehub.middleware.permission_required import current_user_id, require_auth, require_role
from resourcehub.services import sprint_health_service

logger = logging.getLogger(__name__)

sprint_health_bp = Blueprint("sprint_health_bp", __name__, url_prefix="/api/v1")

HEALTH_WRITERS = ("PM", "Admin", "TeamLead")


@sprint_health_bp.route("/sprints/<int:sprint_id>/health", methods=["POST"])
@require_role(*HEALTH_WRITERS)
def create_health(sprint_id):
    record = sprint_health_service.create_sprint_health(sprint_id, json_body(), user_id=current_user_id())
    return jsonify({"data": record, "message": "Sprint health recorded"}), 201


@sprint_health_bp.route("/sprints/<int:sprint_id>/health", methods=["PUT"])
@require_role(*HEALTH_WRITERS)
def update_health(sprint_id):
    record = sprint_health_service.update_sprint_health(sprint_id, json_body(), user_id=current_user_id())
    return jsonify({"data": record, "message": "Sprint health updated"})


@sprint_health_bp.route("/sprints/<int:sprint_id>/health", methods=["GET"])
@require_auth
def get_health(sprint_id):
    return jsonify(sprint_health_service.get_sprint_health(sprint_id))


@sprint_health_bp.route("/sprints/<int:sprint_id>/health/history", methods=["GET"])
@require_auth
def health_history(sprint_id):
    return jsonify({"data": sprint_health_service.get_health_history(sprint_id)})
