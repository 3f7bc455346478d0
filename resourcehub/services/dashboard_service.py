"""
Dashboard aggregation.

    project_dashboard(project_id)     current sprint, recent history, averages
    portfolio_overview(filters)       one row per project with latest RAG
    project_trends(project_id, months)  health, success rate and utilization
                                        over the last N months
"""

from __future__ import annotations

import logging
import math
from datetime import date

from resourcehub.core.exceptions import NotFoundError
from resourcehub.models import db
from resourcehub.models.project import Project, Sprint
from resourcehub.models.resource import ResourceAllocation
from resourcehub.models.sprint_health import SprintHealth
from resourcehub.services.health_calculator import TREND_THRESHOLD, round_half_away
from resourcehub.services.report_service import monthly_outcomes

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 5
TREND_WINDOW = 3


def _get_project(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def _average_score(records) -> float:
    if not records:
        return 0
    return round_half_away(sum(h.overall_health_score for h in records) / len(records), 1)


def _windowed_trend(scores: list[float]) -> dict:
    """Mean of the last three scores against the mean of the three before.

    Fewer than six scores reports stable/0.
    """
    if len(scores) < 2 * TREND_WINDOW:
        return {"direction": "stable", "percentage": 0}
    recent = sum(scores[-TREND_WINDOW:]) / TREND_WINDOW
    previous = sum(scores[-2 * TREND_WINDOW:-TREND_WINDOW]) / TREND_WINDOW
    difference = recent - previous
    if previous == 0 or abs(difference) <= TREND_THRESHOLD:
        return {"direction": "stable", "percentage": 0}
    pct = int(abs(round_half_away(difference / previous * 100)))
    return {"direction": "improving" if difference > 0 else "declining", "percentage": pct}


def _health_by_sprint(sprint_ids) -> dict[int, SprintHealth]:
    if not sprint_ids:
        return {}
    rows = SprintHealth.query.filter(SprintHealth.sprint_id.in_(sprint_ids)).all()
    return {h.sprint_id: h for h in rows}


def _outcome_metrics(sprints) -> dict:
    total = len(sprints)
    success = sum(1 for s in sprints if s.overall_outcome == "Success")
    return {
        "total_sprints": total,
        "failed_sprints": sum(1 for s in sprints if s.overall_outcome == "Failure"),
        "at_risk_sprints": sum(1 for s in sprints if s.overall_outcome == "AtRisk"),
        "success_rate": int(round_half_away(success / total * 100)) if total else 0,
    }


def project_dashboard(project_id: int, today: date | None = None) -> dict:
    project = _get_project(project_id)
    today = today or date.today()
    sprints = Sprint.query.filter_by(project_id=project_id).order_by(Sprint.sprint_number).all()

    if not sprints:
        return {
            "project": project.to_dict(),
            "current_sprint": None,
            "sprint_history": [],
            "avg_health_score": 0,
            "trend": {"direction": "new", "percentage": 0},
            "resources": [],
            "metrics": _outcome_metrics([]),
        }

    health = _health_by_sprint([s.id for s in sprints])

    current = next((s for s in sprints if s.start_date <= today <= s.end_date), None)
    current_sprint = None
    if current is not None:
        current_sprint = current.to_dict()
        current_health = health.get(current.id)
        current_sprint["health"] = current_health.to_dict() if current_health else None

    history = []
    for sprint in sprints[-HISTORY_WINDOW:]:
        record = health.get(sprint.id)
        history.append({
            "sprint_number": sprint.sprint_number,
            "sprint_goal": sprint.sprint_goal,
            "start_date": sprint.start_date.isoformat(),
            "end_date": sprint.end_date.isoformat(),
            "outcome": sprint.overall_outcome or "NotAssessed",
            "health_score": record.overall_health_score if record else None,
            "rag_status": record.rag_status if record else None,
        })

    ordered = [health[s.id] for s in sprints if s.id in health]
    allocations = ResourceAllocation.query.filter(
        ResourceAllocation.project_id == project_id,
        ResourceAllocation.end_date >= today,
    ).all()

    return {
        "project": project.to_dict(),
        "current_sprint": current_sprint,
        "sprint_history": history,
        "avg_health_score": _average_score(ordered),
        "trend": _windowed_trend([h.overall_health_score for h in ordered]),
        "resources": [
            {
                "resource_name": a.resource.name if a.resource else "Unknown",
                "role": a.resource.role if a.resource else None,
                "allocation": a.allocation_percentage,
            }
            for a in allocations
        ],
        "metrics": _outcome_metrics(sprints),
    }


def portfolio_overview(status=None, client=None, methodology=None, page=1, limit=20,
                       today: date | None = None) -> dict:
    today = today or date.today()
    q = Project.query
    if status:
        q = q.filter(Project.status == status)
    if client:
        q = q.filter(Project.client.ilike(f"%{client}%"))
    if methodology:
        q = q.filter(Project.methodology == methodology)

    total = q.count()
    projects = q.order_by(Project.name).limit(limit).offset((page - 1) * limit).all()

    rows = []
    for project in projects:
        sprints = Sprint.query.filter_by(project_id=project.id).all()
        records = list(_health_by_sprint([s.id for s in sprints]).values())
        latest = max(records, key=lambda h: (h.created_at, h.id)) if records else None

        allocations = ResourceAllocation.query.filter(
            ResourceAllocation.project_id == project.id,
            ResourceAllocation.end_date >= today,
        ).all()
        utilization = (
            int(round_half_away(sum(a.allocation_percentage for a in allocations) / len(allocations)))
            if allocations else 0
        )

        metrics = _outcome_metrics(sprints)
        rows.append({
            "project_id": project.id,
            "name": project.name,
            "client": project.client,
            "status": project.status,
            "methodology": project.methodology,
            "rag_status": latest.rag_status if latest else "NotAssessed",
            "failed_sprints": metrics["failed_sprints"],
            "at_risk_sprints": metrics["at_risk_sprints"],
            "avg_health_score": _average_score(records),
            "resource_utilization": utilization,
            "total_sprints": metrics["total_sprints"],
        })

    return {
        "items": rows,
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def _months_back(today: date, months: int) -> date:
    year, month = today.year, today.month - months
    while month < 1:
        month += 12
        year -= 1
    return date(year, month, min(today.day, 28))


def project_trends(project_id: int, months: int = 6, today: date | None = None) -> dict:
    _get_project(project_id)
    today = today or date.today()
    since = _months_back(today, months)

    sprints = (
        Sprint.query.filter(Sprint.project_id == project_id, Sprint.start_date >= since)
        .order_by(Sprint.sprint_number)
        .all()
    )
    health = _health_by_sprint([s.id for s in sprints])

    health_trend = []
    for sprint in sprints:
        record = health.get(sprint.id)
        health_trend.append({
            "sprint": f"Sprint {sprint.sprint_number}",
            "sprint_number": sprint.sprint_number,
            "score": record.overall_health_score if record else 0,
            "date": sprint.start_date.isoformat(),
            "rag_status": record.rag_status if record else "NotAssessed",
        })

    allocations = ResourceAllocation.query.filter(
        ResourceAllocation.project_id == project_id,
        ResourceAllocation.start_date >= since,
    ).all()
    by_month: dict[str, list[int]] = {}
    for alloc in allocations:
        key = f"{alloc.start_date.year}-{alloc.start_date.month:02d}"
        by_month.setdefault(key, []).append(alloc.allocation_percentage)

    return {
        "health_trend": health_trend,
        "success_rate": [
            {
                "month": row["period"],
                "success_rate": row["success_rate"],
                "success": row["success"],
                "at_risk": row["at_risk"],
                "failure": row["failure"],
            }
            for row in monthly_outcomes(sprints)
        ],
        "utilization": [
            {"month": month, "avg_utilization": int(round_half_away(sum(v) / len(v)))}
            for month, v in sorted(by_month.items())
        ],
    }
