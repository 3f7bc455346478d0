"""
Sprint CRUD service.

Sprints of one project never overlap in time; every create and date change
is checked against the project's other sprints. A sprint whose end date has
passed is completed and can no longer be deleted.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from resourcehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.project import SPRINT_TYPES, Project, Sprint
from resourcehub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

MAX_SPRINT_GOAL = 500


def get_sprint(sprint_id: int) -> Sprint:
    sprint = db.session.get(Sprint, sprint_id)
    if not sprint:
        raise NotFoundError(resource="Sprint", resource_id=sprint_id)
    return sprint


def _overlapping(project_id, start, end, exclude_id=None):
    q = Sprint.query.filter(
        Sprint.project_id == project_id,
        Sprint.start_date <= end,
        Sprint.end_date >= start,
    )
    if exclude_id is not None:
        q = q.filter(Sprint.id != exclude_id)
    return q.order_by(Sprint.sprint_number).all()


def _parse_sprint_number(value, errors):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        errors["sprint_number"] = "sprint_number must be a positive whole number"
        return None
    return value


def _validate(data: dict, *, partial: bool, current: Sprint | None = None) -> dict:
    errors: dict[str, str] = {}
    fields: dict = {}

    if "sprint_number" in data or not partial:
        number = _parse_sprint_number(data.get("sprint_number"), errors)
        if number is not None:
            fields["sprint_number"] = number

    for key in ("start_date", "end_date"):
        if key in data or not partial:
            value = parse_date(data.get(key))
            if value is None:
                errors[key] = f"{key} is required (YYYY-MM-DD)"
            else:
                fields[key] = value

    if "sprint_goal" in data or not partial:
        goal = str(data.get("sprint_goal") or "").strip()
        if not goal:
            errors["sprint_goal"] = "sprint_goal is required"
        elif len(goal) > MAX_SPRINT_GOAL:
            errors["sprint_goal"] = f"sprint_goal must be at most {MAX_SPRINT_GOAL} characters"
        else:
            fields["sprint_goal"] = goal

    sprint_type = data.get("sprint_type")
    if sprint_type is not None:
        if sprint_type not in SPRINT_TYPES:
            errors["sprint_type"] = f"sprint_type must be one of: {', '.join(sorted(SPRINT_TYPES))}"
        else:
            fields["sprint_type"] = sprint_type

    start = fields.get("start_date", current.start_date if current else None)
    end = fields.get("end_date", current.end_date if current else None)
    if start and end and end < start:
        errors["end_date"] = "End date must be on or after start date"

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def _ensure_unique_number(project_id, number, exclude_id=None):
    q = Sprint.query.filter_by(project_id=project_id, sprint_number=number)
    if exclude_id is not None:
        q = q.filter(Sprint.id != exclude_id)
    if q.first():
        raise ConflictError("Sprint", "sprint_number", number,
                            message=f"Sprint #{number} already exists in this project")


def list_sprints(project_id: int, status=None, page=1, limit=20, today: date | None = None) -> dict:
    """Sprints of a project, latest start first, filtered by active/upcoming/completed."""
    if not db.session.get(Project, project_id):
        raise NotFoundError(resource="Project", resource_id=project_id)
    today = today or date.today()

    q = Sprint.query.filter(Sprint.project_id == project_id)
    if status == "active":
        q = q.filter(Sprint.start_date <= today, Sprint.end_date >= today)
    elif status == "upcoming":
        q = q.filter(Sprint.start_date > today)
    elif status == "completed":
        q = q.filter(Sprint.end_date < today)

    total = q.count()
    items = (
        q.order_by(Sprint.start_date.desc(), Sprint.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def create_sprint(project_id: int, data: dict) -> Sprint:
    """
    Raises:
        NotFoundError:   project does not exist.
        ValidationError: missing/invalid fields.
        ConflictError:   dates overlap another sprint, or the number is taken.
    """
    if not db.session.get(Project, project_id):
        raise NotFoundError(resource="Project", resource_id=project_id)
    fields = _validate(data, partial=False)

    overlapping = _overlapping(project_id, fields["start_date"], fields["end_date"])
    if overlapping:
        numbers = ", ".join(f"#{s.sprint_number}" for s in overlapping)
        raise ConflictError("Sprint", "dates", None,
                            message=f"Sprint dates overlap with existing sprint ({numbers})")
    _ensure_unique_number(project_id, fields["sprint_number"])

    sprint = Sprint(project_id=project_id, **fields)
    db.session.add(sprint)
    db.session.commit()
    logger.info("Sprint created id=%s project_id=%s number=%s", sprint.id, project_id, sprint.sprint_number)
    return sprint


def update_sprint(sprint_id: int, data: dict) -> Sprint:
    sprint = get_sprint(sprint_id)
    fields = _validate(data, partial=True, current=sprint)

    if "start_date" in fields or "end_date" in fields:
        start = fields.get("start_date", sprint.start_date)
        end = fields.get("end_date", sprint.end_date)
        if _overlapping(sprint.project_id, start, end, exclude_id=sprint.id):
            raise ConflictError("Sprint", "dates", None,
                                message="Updated dates overlap with existing sprint")
    if "sprint_number" in fields:
        _ensure_unique_number(sprint.project_id, fields["sprint_number"], exclude_id=sprint.id)

    for key, value in fields.items():
        setattr(sprint, key, value)
    db.session.commit()
    logger.info("Sprint updated id=%s fields=%s", sprint.id, sorted(fields))
    return sprint


def delete_sprint(sprint_id: int, today: date | None = None) -> None:
    sprint = get_sprint(sprint_id)
    today = today or date.today()
    if today > sprint.end_date:
        raise ValidationError("Cannot delete completed sprint. Archive instead.")
    db.session.delete(sprint)
    db.session.commit()
    logger.info("Sprint deleted id=%s", sprint_id)


def get_sprint_status(sprint_id: int, today: date | None = None) -> dict:
    """planned / active / completed with days remaining and percent complete."""
    sprint = get_sprint(sprint_id)
    today = today or date.today()
    status = sprint.status_on(today)

    days_remaining = 0
    percent_complete = 0
    if status == "active":
        days_remaining = (sprint.end_date - today).days
        total_days = (sprint.end_date - sprint.start_date).days
        if total_days:
            percent_complete = round((total_days - days_remaining) / total_days * 100)
    elif status == "completed":
        percent_complete = 100
    else:
        days_remaining = (sprint.start_date - today).days

    return {
        "sprint_id": sprint.id,
        "status": status,
        "days_remaining": days_remaining,
        "percent_complete": percent_complete,
        "start_date": sprint.start_date.isoformat(),
        "end_date": sprint.end_date.isoformat(),
    }
