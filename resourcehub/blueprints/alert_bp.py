"""
ResourceHub
Alert Blueprint: alerts of the authenticated user.

Endpoints:
    GET    /api/v1/alerts                  list (?is_read=&severity=&type=&limit=)
    GET    /api/v1/alerts/unread-count
    PUT    /api/v1/alerts/mark-all-read
    PUT    /api/v1/alerts/<id>/read
    PUT    /api/v1/alerts/<id>/archive
    DELETE /api/v1/alerts/<id>

Alerts are per recipient, so every route needs a bearer token even when
API_AUTH_ENABLED is off.
"""

from flask import Blueprint, jsonify, request

from resourcehub.core.exceptions import AuthorizationError
from resourcehub.middleware.permission_required import current_user
from resourcehub.services.alert_service import AlertService
from resourcehub.utils.helpers import parse_int_arg

alert_bp = Blueprint("alert_bp", __name__, url_prefix="/api/v1")


def _user_id():
    user = current_user()
    if user is None:
        raise AuthorizationError("Unauthorized", status=401)
    return user.id


@alert_bp.route("/alerts", methods=["GET"])
def list_alerts():
    is_read = request.args.get("is_read")
    if is_read is not None:
        is_read = is_read.lower() in ("1", "true", "yes")
    items, unread = AlertService.list_for_user(
        _user_id(),
        is_read=is_read,
        severity=request.args.get("severity"),
        alert_type=request.args.get("type"),
        limit=parse_int_arg("limit", 50, minimum=1, maximum=200),
    )
    return jsonify({"data": [a.to_dict() for a in items], "unread_count": unread})


@alert_bp.route("/alerts/unread-count", methods=["GET"])
def unread_count():
    return jsonify({"count": AlertService.unread_count(_user_id())})


@alert_bp.route("/alerts/mark-all-read", methods=["PUT"])
def mark_all_read():
    count = AlertService.mark_all_read(_user_id())
    return jsonify({"updated": count})


@alert_bp.route("/alerts/<int:alert_id>/read", methods=["PUT"])
def mark_read(alert_id):
    alert = AlertService.mark_read(alert_id, _user_id())
    return jsonify({"data": alert.to_dict()})


@alert_bp.route("/alerts/<int:alert_id>/archive", methods=["PUT"])
def archive(alert_id):
    alert = AlertService.archive(alert_id, _user_id())
    return jsonify({"data": alert.to_dict()})


@alert_bp.route("/alerts/<int:alert_id>", methods=["DELETE"])
def delete(alert_id):
    AlertService.delete(alert_id, _user_id())
    return jsonify({"deleted": True, "id": alert_id})
