"""
ResourceHub
Reports Blueprint.

Endpoints (each accepts ?format=json|csv|xlsx and ?start_date=&end_date=):
    GET /api/v1/reports/sprint-success-trend/<project_id>
    GET /api/v1/reports/scrum-maturity-trend/<project_id>
    GET /api/v1/reports/resource-utilization          (Admin/PM)
    GET /api/v1/reports/recurring-failures            (Admin/PM/TeamLead, ?min_occurrences=)
"""

import logging
from datetime import date

from flask import Blueprint, Response, jsonify, request

from resourcehub.core.exceptions import ValidationError
from resourcehub.middleware.permission_required import require_auth, require_role
from resourcehub.services import report_service
from resourcehub.services.export_service import XLSX_MIMETYPE, rows_to_csv, rows_to_xlsx
from resourcehub.utils.helpers import parse_date, parse_int_arg

logger = logging.getLogger(__name__)

report_bp = Blueprint("report_bp", __name__, url_prefix="/api/v1/reports")

FORMATS = ("json", "csv", "xlsx")


def _period():
    return parse_date(request.args.get("start_date")), parse_date(request.args.get("end_date"))


def _render(name, title, rows, summary, columns):
    fmt = request.args.get("format", "json").lower()
    if fmt not in FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(FORMATS)}")

    if fmt == "json":
        return jsonify({"data": rows, "summary": summary})

    date_str = date.today().strftime("%Y%m%d")
    if fmt == "csv":
        return Response(
            rows_to_csv(rows, columns),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={name}_{date_str}.csv"},
        )
    buf = rows_to_xlsx(title, rows, columns)
    return Response(
        buf.getvalue(),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={name}_{date_str}.xlsx"},
    )


@report_bp.route("/sprint-success-trend/<int:project_id>", methods=["GET"])
@require_auth
def sprint_success_trend(project_id):
    rows, summary = report_service.sprint_success_trend(project_id, *_period())
    return _render(f"sprint-success-trend-{project_id}", "Sprint Success Trend",
                   rows, summary, report_service.SPRINT_SUCCESS_COLUMNS)


@report_bp.route("/scrum-maturity-trend/<int:project_id>", methods=["GET"])
@require_auth
def scrum_maturity_trend(project_id):
    rows, summary = report_service.scrum_maturity_trend(project_id, *_period())
    return _render(f"scrum-maturity-trend-{project_id}", "Scrum Maturity Trend",
                   rows, summary, report_service.SCRUM_MATURITY_COLUMNS)


@report_bp.route("/resource-utilization", methods=["GET"])
@require_role("Admin", "PM")
def resource_utilization():
    rows, summary = report_service.resource_utilization(*_period())
    return _render("resource-utilization", "Resource Utilization",
                   rows, summary, report_service.RESOURCE_UTILIZATION_COLUMNS)


@report_bp.route("/recurring-failures", methods=["GET"])
@require_role("Admin", "PM", "TeamLead")
def recurring_failures():
    min_occurrences = parse_int_arg("min_occurrences", 2, minimum=1)
    rows, summary = report_service.recurring_failures(*_period(), min_occurrences=min_occurrences)
    return _render("recurring-failures", "Recurring Failures",
                   rows, summary, report_service.RECURRING_FAILURES_COLUMNS)
