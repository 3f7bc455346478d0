"""
ResourceHub
Dashboard Blueprint.

Endpoints:
    GET /api/v1/dashboard/project/<id>             single project dashboard
    GET /api/v1/dashboard/portfolio                all projects (?status=&client=&methodology=&page=&limit=)
    GET /api/v1/dashboard/trends/<project_id>      trends over ?months= (default 6)
"""

from flask import Blueprint, jsonify, request

from resourcehub.blueprints import page_args
from resourcehub.middleware.permission_required import require_auth
from resourcehub.services import dashboard_service
from resourcehub.utils.helpers import parse_int_arg

dashboard_bp = Blueprint("dashboard_bp", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("/project/<int:project_id>", methods=["GET"])
@require_auth
def project_dashboard(project_id):
    return jsonify({"data": dashboard_service.project_dashboard(project_id)})


@dashboard_bp.route("/portfolio", methods=["GET"])
@require_auth
def portfolio():
    page, limit = page_args()
    result = dashboard_service.portfolio_overview(
        status=request.args.get("status"),
        client=request.args.get("client"),
        methodology=request.args.get("methodology"),
        page=page,
        limit=limit,
    )
    return jsonify({
        "data": result["items"],
        "total": result["total"],
        "page": result["page"],
        "pages": result["pages"],
    })


@dashboard_bp.route("/trends/<int:project_id>", methods=["GET"])
@require_auth
def trends(project_id):
    months = parse_int_arg("months", 6, minimum=1, maximum=36)
    return jsonify({"data": dashboard_service.project_trends(project_id, months=months)})
