"""Sprint health service layer.

Lifecycle of a SprintHealth record (Absent → Active):

    create_sprint_health  only when no record exists for the sprint
    update_sprint_health  only when one does; dimensions merge, score
                            and RAG are always recomputed

Rules:
  - Dimensions and outcome are validated before anything is written.
  - overall_health_score / rag_status come only from health_calculator.
  - The sprint's outcome fields are written in the same transaction.
  - Alerts are dispatched after the commit; dispatch failures never undo
    the write (AlertService swallows and logs them).
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from resourcehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.project import (
    FAILURE_REASONS, GOAL_ACHIEVEMENTS, SPRINT_OUTCOMES, Sprint,
)
from resourcehub.models.sprint_health import SprintHealth
from resourcehub.services.alert_service import AlertService
from resourcehub.services.health_calculator import (
    DIMENSION_KEYS,
    calculate_overall_score,
    calculate_rag_status,
    get_health_trend,
    normalize_dimension,
    validate_dimensions,
)

logger = logging.getLogger(__name__)

MAX_SPRINT_COMMENTS = 2000


# ── Helpers ───────────────────────────────────────────────────────────────────


def _get_sprint(sprint_id: int) -> Sprint:
    sprint = db.session.get(Sprint, sprint_id)
    if not sprint:
        raise NotFoundError(resource="Sprint", resource_id=sprint_id)
    return sprint


def _get_health(sprint_id: int) -> SprintHealth | None:
    return db.session.execute(
        db.select(SprintHealth).where(SprintHealth.sprint_id == sprint_id)
    ).scalar_one_or_none()


def _validate_sprint_fields(data: dict, *, outcome_required: bool) -> dict:
    """Validate the outcome-related sprint fields present in ``data``.

    Returns the subset of fields to write onto the Sprint.
    """
    errors: dict[str, str] = {}
    fields: dict = {}

    outcome = data.get("overall_outcome")
    if outcome is None:
        if outcome_required:
            errors["overall_outcome"] = "overall_outcome is required"
    elif outcome not in SPRINT_OUTCOMES:
        errors["overall_outcome"] = "Invalid outcome. Must be Success, AtRisk, or Failure"
    else:
        fields["overall_outcome"] = outcome

    goal = data.get("goal_achievement")
    if goal is not None:
        if goal not in GOAL_ACHIEVEMENTS:
            errors["goal_achievement"] = f"goal_achievement must be one of: {', '.join(sorted(GOAL_ACHIEVEMENTS))}"
        else:
            fields["goal_achievement"] = goal

    reasons = data.get("failure_reasons")
    if reasons is not None:
        if not isinstance(reasons, list) or any(r not in FAILURE_REASONS for r in reasons):
            errors["failure_reasons"] = f"failure_reasons must be a list of: {', '.join(sorted(FAILURE_REASONS))}"
        else:
            fields["failure_reasons"] = list(reasons)

    comments = data.get("comments")
    if comments is not None:
        if not isinstance(comments, str) or len(comments) > MAX_SPRINT_COMMENTS:
            errors["comments"] = f"comments must be a string of at most {MAX_SPRINT_COMMENTS} characters"
        else:
            fields["comments"] = comments.strip()

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def _commit_or_conflict(sprint_id: int) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Duplicate sprint health record sprint_id=%s", sprint_id)
        raise ConflictError(
            "SprintHealth", "sprint_id", sprint_id,
            message="Health data already exists for this sprint. Use PUT to update.",
        ) from None


def _dispatch_outcome_alerts(sprint: Sprint, explicit_outcome: str | None, previous_outcome: str | None) -> None:
    if explicit_outcome == "Failure" and previous_outcome != "Failure":
        AlertService.notify_sprint_failure(sprint)
    if explicit_outcome == "AtRisk":
        AlertService.check_consecutive_at_risk_sprints(sprint.project_id)


# ── Lifecycle ─────────────────────────────────────────────────────────────────


def create_sprint_health(sprint_id: int, data: dict, user_id: int | None = None) -> dict:
    """Record the health assessment of a sprint.

    Args:
        sprint_id: Sprint being assessed.
        data:      Seven dimension objects plus ``overall_outcome`` and the
                   optional ``goal_achievement``, ``failure_reasons``,
                   ``comments``.
        user_id:   Creator, stamped on the record.

    Returns:
        Serialized SprintHealth dict.

    Raises:
        NotFoundError:   Sprint does not exist.
        ConflictError:   A record already exists for the sprint.
        ValidationError: Missing / out-of-range ratings or invalid fields.
    """
    sprint = _get_sprint(sprint_id)

    if _get_health(sprint_id) is not None:
        raise ConflictError(
            "SprintHealth", "sprint_id", sprint_id,
            message="Health data already exists for this sprint. Use PUT to update.",
        )

    errors = validate_dimensions(data)
    if errors:
        raise ValidationError("Validation failed", details=errors)
    sprint_fields = _validate_sprint_fields(data, outcome_required=True)
    outcome = sprint_fields["overall_outcome"]

    dimensions = {key: normalize_dimension(data[key]) for key in DIMENSION_KEYS}
    score = calculate_overall_score(dimensions, outcome)
    rag = calculate_rag_status(score)

    previous_outcome = sprint.overall_outcome

    health = SprintHealth(
        sprint_id=sprint_id,
        overall_health_score=score,
        rag_status=rag,
        created_by_id=user_id,
        **dimensions,
    )
    db.session.add(health)
    sprint_fields.setdefault("failure_reasons", [])
    for field, value in sprint_fields.items():
        setattr(sprint, field, value)
    _commit_or_conflict(sprint_id)

    logger.info("Sprint health created sprint_id=%s score=%s rag=%s outcome=%s",
                sprint_id, score, rag, outcome)

    _dispatch_outcome_alerts(sprint, outcome, previous_outcome)
    return health.to_dict()


def update_sprint_health(sprint_id: int, data: dict, user_id: int | None = None) -> dict:
    """Update an existing health record in place.

    Omitted dimensions keep their stored rating; a supplied dimension
    without a ``comment`` keeps the stored comment. The outcome used for
    scoring is the explicit ``overall_outcome``, else the sprint's stored
    outcome, else Success.

    Raises:
        NotFoundError:   No health record exists for the sprint.
        ValidationError: A supplied dimension or field is invalid.
    """
    health = _get_health(sprint_id)
    if health is None:
        raise NotFoundError(resource="SprintHealth", resource_id=sprint_id)
    sprint = health.sprint

    supplied = [key for key in DIMENSION_KEYS if data.get(key) is not None]
    merged = health.dimensions
    for key in supplied:
        incoming = data[key]
        if isinstance(incoming, dict) and "comment" not in incoming:
            incoming = {**incoming, "comment": merged[key].get("comment", "")}
        merged[key] = incoming

    errors = validate_dimensions(merged)
    if errors:
        raise ValidationError("Validation failed", details=errors)
    sprint_fields = _validate_sprint_fields(data, outcome_required=False)

    previous_outcome = sprint.overall_outcome if sprint else None
    explicit_outcome = sprint_fields.get("overall_outcome")
    outcome = explicit_outcome or previous_outcome or "Success"

    dimensions = {key: normalize_dimension(merged[key]) for key in DIMENSION_KEYS}
    score = calculate_overall_score(dimensions, outcome)
    rag = calculate_rag_status(score)

    for key, value in dimensions.items():
        setattr(health, key, value)
    health.overall_health_score = score
    health.rag_status = rag
    health.updated_by_id = user_id
    for field, value in sprint_fields.items():
        setattr(sprint, field, value)
    db.session.commit()

    logger.info("Sprint health updated sprint_id=%s score=%s rag=%s outcome=%s",
                sprint_id, score, rag, outcome)

    _dispatch_outcome_alerts(sprint, explicit_outcome, previous_outcome)
    return health.to_dict()


# ── Queries ───────────────────────────────────────────────────────────────────


def get_sprint_health(sprint_id: int) -> dict:
    """Current record, the previous sprint's record and the trend between them.

    Raises:
        NotFoundError: Sprint or its health record does not exist.
    """
    sprint = _get_sprint(sprint_id)
    health = _get_health(sprint_id)
    if health is None:
        raise NotFoundError(resource="SprintHealth", resource_id=sprint_id)

    previous = db.session.execute(
        db.select(SprintHealth)
        .join(Sprint, SprintHealth.sprint_id == Sprint.id)
        .where(
            Sprint.project_id == sprint.project_id,
            Sprint.sprint_number == sprint.sprint_number - 1,
        )
    ).scalar_one_or_none()

    previous_health = None
    previous_score = None
    if previous is not None:
        previous_score = previous.overall_health_score
        previous_health = {
            "sprint_id": previous.sprint_id,
            "overall_health_score": previous.overall_health_score,
            "rag_status": previous.rag_status,
        }

    data = health.to_dict()
    data["sprint"] = sprint.to_dict()
    return {
        "data": data,
        "previous_health": previous_health,
        "trend": get_health_trend(previous_score, health.overall_health_score),
    }


def get_health_history(sprint_id: int) -> list[dict]:
    """Health of every assessed sprint of the project up to and including this one."""
    sprint = _get_sprint(sprint_id)
    rows = db.session.execute(
        db.select(Sprint, SprintHealth)
        .join(SprintHealth, SprintHealth.sprint_id == Sprint.id)
        .where(
            Sprint.project_id == sprint.project_id,
            Sprint.sprint_number <= sprint.sprint_number,
        )
        .order_by(Sprint.sprint_number)
    ).all()
    return [
        {
            "sprint_number": s.sprint_number,
            "overall_health_score": h.overall_health_score,
            "rag_status": h.rag_status,
            "outcome": s.overall_outcome,
            "created_at": h.created_at.isoformat() if h.created_at else None,
        }
        for s, h in rows
    ]
