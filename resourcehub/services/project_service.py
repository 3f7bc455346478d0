"""Project CRUD service with creator/role ownership checks."""

from __future__ import annotations

import logging

from sqlalchemy import or_

from resourcehub.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.project import PROJECT_METHODOLOGIES, PROJECT_STATUSES, Project, Sprint
from resourcehub.models.sprint_health import SprintHealth
from resourcehub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

RECENT_HEALTH_WINDOW = 5


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def can_edit_project(project: Project, user) -> bool:
    """Creator, Admin and PM may edit. No user means auth is disabled."""
    if user is None:
        return True
    return project.created_by_id == user.id or user.role in ("Admin", "PM")


def can_delete_project(project: Project, user) -> bool:
    if user is None:
        return True
    return project.created_by_id == user.id or user.role == "Admin"


def list_projects(status=None, client=None, search=None) -> list[Project]:
    """Projects newest first; ``client`` and ``search`` are case-insensitive substrings."""
    query = Project.query
    if status:
        query = query.filter(Project.status == status)
    if client:
        query = query.filter(Project.client.ilike(f"%{client}%"))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Project.name.ilike(pattern), Project.client.ilike(pattern)))
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def _validate(data: dict, *, partial: bool, current: Project | None = None) -> dict:
    errors: dict[str, str] = {}
    fields: dict = {}

    for key in ("name", "client"):
        if key in data or not partial:
            value = str(data.get(key) or "").strip()
            if not value:
                errors[key] = f"{key} is required"
            elif key == "name" and not 2 <= len(value) <= 200:
                errors[key] = "name must be 2-200 characters"
            else:
                fields[key] = value

    if "start_date" in data or not partial:
        start = parse_date(data.get("start_date"))
        if start is None:
            errors["start_date"] = "start_date is required (YYYY-MM-DD)"
        else:
            fields["start_date"] = start
    if data.get("end_date"):
        end = parse_date(data["end_date"])
        if end is None:
            errors["end_date"] = "Invalid date. Use YYYY-MM-DD"
        else:
            fields["end_date"] = end
    elif "end_date" in data:
        fields["end_date"] = None

    start = fields.get("start_date", current.start_date if current else None)
    end = fields.get("end_date", current.end_date if current else None)
    if start and end and end <= start:
        errors["end_date"] = "End date must be after start date"

    status = data.get("status")
    if status is not None:
        if status not in PROJECT_STATUSES:
            errors["status"] = "Invalid status"
        else:
            fields["status"] = status
    methodology = data.get("methodology")
    if methodology is not None:
        if methodology not in PROJECT_METHODOLOGIES:
            errors["methodology"] = f"methodology must be one of: {', '.join(sorted(PROJECT_METHODOLOGIES))}"
        else:
            fields["methodology"] = methodology

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    q = Project.query.filter(Project.name == name)
    if exclude_id is not None:
        q = q.filter(Project.id != exclude_id)
    if q.first():
        raise ConflictError("Project", "name", name, message="Project name already exists")


def create_project(data: dict, user_id: int | None = None) -> Project:
    fields = _validate(data, partial=False)
    _ensure_unique_name(fields["name"])

    project = Project(created_by_id=user_id, **fields)
    db.session.add(project)
    db.session.commit()
    logger.info("Project created id=%s name=%s", project.id, project.name)
    return project


def update_project(project_id: int, data: dict, user=None) -> Project:
    project = get_project(project_id)
    if not can_edit_project(project, user):
        raise AuthorizationError("Not authorized to update this project")

    fields = _validate(data, partial=True, current=project)
    if "name" in fields:
        _ensure_unique_name(fields["name"], exclude_id=project.id)
    for key, value in fields.items():
        setattr(project, key, value)
    db.session.commit()
    logger.info("Project updated id=%s fields=%s", project.id, sorted(fields))
    return project


def delete_project(project_id: int, user=None) -> None:
    """Delete a project with its sprints, their health records and its allocations."""
    project = get_project(project_id)
    if not can_delete_project(project, user):
        raise AuthorizationError("Not authorized to delete this project")
    db.session.delete(project)
    db.session.commit()
    logger.info("Project deleted id=%s", project_id)


def get_project_health(project_id: int) -> dict:
    """Summary health over the most recent health records of a project.

    Red when the recent average is below 60 or three or more records are
    Red; Amber when below 80 or two Red records; Green otherwise.
    """
    get_project(project_id)
    sprints = Sprint.query.filter_by(project_id=project_id).all()
    if not sprints:
        return {
            "avg_score": 0,
            "health": "No data",
            "total_sprints": 0,
            "completed_sprints": 0,
            "failed_sprints": 0,
            "at_risk_sprints": 0,
        }

    healths = (
        SprintHealth.query.join(Sprint, SprintHealth.sprint_id == Sprint.id)
        .filter(Sprint.project_id == project_id)
        .order_by(SprintHealth.created_at.desc(), SprintHealth.id.desc())
        .all()
    )
    recent = healths[:RECENT_HEALTH_WINDOW]
    avg = sum(h.overall_health_score or 0 for h in recent) / len(recent) if recent else 0

    red = sum(1 for h in healths if h.rag_status == "Red")
    amber = sum(1 for h in healths if h.rag_status == "Amber")

    health = "Green"
    if avg < 60 or red >= 3:
        health = "Red"
    elif avg < 80 or red >= 2:
        health = "Amber"

    return {
        "avg_score": round(avg, 1),
        "health": health,
        "total_sprints": len(sprints),
        "completed_sprints": sum(1 for s in sprints if s.overall_outcome),
        "failed_sprints": red,
        "at_risk_sprints": amber,
    }
