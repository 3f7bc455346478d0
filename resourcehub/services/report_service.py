"""
Analytical reports.

Each ``*_report`` function returns ``(rows, summary)``; the matching
``*_COLUMNS`` list drives CSV/XLSX export of the rows.

    sprint_success_trend   monthly Success / AtRisk / Failure counts
    scrum_maturity_trend   per-sprint dimension ratings and overall score
    resource_utilization   per-resource allocation totals
    recurring_failures     failure reasons repeated across sprints
"""

from __future__ import annotations

from resourcehub.core.exceptions import NotFoundError
from resourcehub.models import db
from resourcehub.models.project import Project, Sprint
from resourcehub.models.resource import Resource, ResourceAllocation
from resourcehub.models.sprint_health import SprintHealth
from resourcehub.services.health_calculator import DIMENSION_KEYS, TREND_THRESHOLD, round_half_away


SPRINT_SUCCESS_COLUMNS = [
    ("Period", "period"),
    ("Total Sprints", "total"),
    ("Success", "success"),
    ("At Risk", "at_risk"),
    ("Failure", "failure"),
    ("Success Rate %", "success_rate"),
]

SCRUM_MATURITY_COLUMNS = [
    ("Period", "period"),
    ("Sprint Planning", "sprint_planning_effectiveness"),
    ("Backlog", "backlog_readiness"),
    ("Collaboration", "team_collaboration"),
    ("Daily Scrum", "daily_scrum_effectiveness"),
    ("Execution", "sprint_execution_discipline"),
    ("Review", "sprint_review_quality"),
    ("Retrospective", "retrospective_effectiveness"),
    ("Overall Score", "overall_score"),
    ("RAG", "rag_status"),
]

RESOURCE_UTILIZATION_COLUMNS = [
    ("Resource Name", "resource_name"),
    ("Role", "role"),
    ("Skills", "skills"),
    ("Total Allocated %", "total_allocated"),
    ("Avg Utilization %", "avg_utilization"),
    ("Allocations Count", "allocations_count"),
    ("Over-Allocated", "over_allocated"),
]

RECURRING_FAILURES_COLUMNS = [
    ("Failure Reason", "reason"),
    ("Occurrences", "count"),
    ("Percentage", "percentage"),
    ("Affected Projects", "affected_projects"),
]


def _month_key(d):
    return f"{d.year}-{d.month:02d}"


def _sprints_in_period(query, start, end):
    if start and end:
        query = query.filter(Sprint.start_date >= start, Sprint.start_date <= end)
    return query


def _require_project(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


# ── Sprint success ───────────────────────────────────────────────────────────


def monthly_outcomes(sprints) -> list[dict]:
    """Group sprints by start month and count each outcome."""
    months: dict[str, dict] = {}
    for sprint in sprints:
        key = _month_key(sprint.start_date)
        entry = months.setdefault(key, {"period": key, "total": 0, "success": 0, "at_risk": 0, "failure": 0})
        entry["total"] += 1
        if sprint.overall_outcome == "Success":
            entry["success"] += 1
        elif sprint.overall_outcome == "AtRisk":
            entry["at_risk"] += 1
        elif sprint.overall_outcome == "Failure":
            entry["failure"] += 1
    rows = sorted(months.values(), key=lambda e: e["period"])
    for entry in rows:
        entry["success_rate"] = int(round_half_away(entry["success"] / entry["total"] * 100))
    return rows


def sprint_success_trend(project_id, start=None, end=None):
    _require_project(project_id)
    sprints = _sprints_in_period(Sprint.query.filter(Sprint.project_id == project_id), start, end)
    rows = monthly_outcomes(sprints.order_by(Sprint.sprint_number).all())

    total = sum(r["total"] for r in rows)
    success = sum(r["success"] for r in rows)
    summary = {
        "total_sprints": total,
        "total_success": success,
        "avg_success_rate": int(round_half_away(success / total * 100)) if total else 0,
        "report_period": {"start_date": _iso(start), "end_date": _iso(end)},
    }
    return rows, summary


# ── Scrum maturity ───────────────────────────────────────────────────────────


def scrum_maturity_trend(project_id, start=None, end=None):
    _require_project(project_id)
    query = (
        db.session.query(Sprint, SprintHealth)
        .join(SprintHealth, SprintHealth.sprint_id == Sprint.id)
        .filter(Sprint.project_id == project_id)
    )
    pairs = _sprints_in_period(query, start, end).order_by(Sprint.sprint_number).all()

    rows = []
    for sprint, health in pairs:
        ratings = health.ratings()
        row = {
            "period": f"Sprint {sprint.sprint_number}",
            "sprint_number": sprint.sprint_number,
            "date": sprint.start_date.isoformat(),
            "overall_score": health.overall_health_score,
            "rag_status": health.rag_status,
            "avg_dimension_score": round_half_away(sum(ratings.values()) / len(DIMENSION_KEYS), 1),
        }
        row.update(ratings)
        rows.append(row)

    trend = "stable"
    if len(rows) >= 2:
        diff = rows[-1]["overall_score"] - rows[-2]["overall_score"]
        if diff > TREND_THRESHOLD:
            trend = "improving"
        elif diff < -TREND_THRESHOLD:
            trend = "declining"

    summary = {
        "current_maturity": rows[-1]["overall_score"] if rows else 0,
        "avg_maturity": round_half_away(sum(r["overall_score"] for r in rows) / len(rows), 1) if rows else 0,
        "trend": trend,
        "total_sprints": len(rows),
    }
    return rows, summary


# ── Resource utilization ─────────────────────────────────────────────────────


def resource_utilization(start=None, end=None):
    """Per-resource totals, highest average utilization first.

    Over-allocated here means the summed percentage exceeds 100, regardless
    of the resource's own availability.
    """
    rows = []
    for resource in Resource.query.order_by(Resource.name, Resource.id).all():
        q = ResourceAllocation.query.filter(ResourceAllocation.resource_id == resource.id)
        if start and end:
            q = q.filter(ResourceAllocation.start_date <= end, ResourceAllocation.end_date >= start)
        allocations = q.order_by(ResourceAllocation.start_date).all()

        total = sum(a.allocation_percentage for a in allocations)
        rows.append({
            "resource_id": resource.id,
            "resource_name": resource.name,
            "role": resource.role,
            "skills": ", ".join(resource.skills or []),
            "total_allocated": total,
            "avg_utilization": int(round_half_away(total / len(allocations))) if allocations else 0,
            "allocations_count": len(allocations),
            "over_allocated": total > 100,
            "projects": [
                {
                    "project_name": a.project.name if a.project else "Unknown",
                    "allocation": a.allocation_percentage,
                    "start_date": a.start_date.isoformat(),
                    "end_date": a.end_date.isoformat(),
                }
                for a in allocations
            ],
        })
    rows.sort(key=lambda r: r["avg_utilization"], reverse=True)

    summary = {
        "total_resources": len(rows),
        "over_allocated_count": sum(1 for r in rows if r["over_allocated"]),
        "avg_utilization": int(round_half_away(sum(r["avg_utilization"] for r in rows) / len(rows))) if rows else 0,
        "report_period": {"start_date": _iso(start), "end_date": _iso(end)},
    }
    return rows, summary


# ── Recurring failures ───────────────────────────────────────────────────────


def recurring_failures(start=None, end=None, min_occurrences=2):
    """Failure reasons seen on at least ``min_occurrences`` Failure/AtRisk sprints."""
    query = Sprint.query.filter(Sprint.overall_outcome.in_(["Failure", "AtRisk"]))
    sprints = _sprints_in_period(query, start, end).order_by(Sprint.id).all()

    counts: dict[str, int] = {}
    projects: dict[str, dict[str, int]] = {}
    for sprint in sprints:
        project_name = sprint.project.name if sprint.project else "Unknown"
        for reason in sprint.failure_reasons or []:
            counts[reason] = counts.get(reason, 0) + 1
            per_project = projects.setdefault(reason, {})
            per_project[project_name] = per_project.get(project_name, 0) + 1

    denominator = len(sprints) or 1
    rows = [
        {
            "reason": reason,
            "count": count,
            "percentage": int(round_half_away(count / denominator * 100)),
            "affected_projects": len(projects[reason]),
            "projects": [
                {"project_name": name, "sprint_count": n} for name, n in projects[reason].items()
            ],
        }
        for reason, count in counts.items()
        if count >= min_occurrences
    ]
    rows.sort(key=lambda r: (-r["count"], r["reason"]))

    summary = {
        "top_reason": rows[0]["reason"] if rows else "None",
        "total_failures": sum(r["count"] for r in rows),
        "unique_reasons": len(rows),
        "min_occurrences": min_occurrences,
    }
    return rows, summary


def _iso(value):
    return value.isoformat() if value else None
