"""
Sprint health scoring engine.

Pure functions, no database access:

    calculate_overall_score(dimensions, outcome)  → 0–100 (one decimal)
    calculate_rag_status(score)                   → "Red" | "Amber" | "Green"
    get_health_trend(previous, current)           → direction + percentage

Scoring:
    average  = mean of the seven 1–5 ratings
    base     = average / 5 × 100
    score    = base × outcome multiplier (Success 1.0, AtRisk 0.8, Failure 0.5)
    rounded half away from zero to one decimal place.

RAG bands (Amber is inclusive at both ends):
    score < 50         → Red
    50 ≤ score ≤ 75    → Amber
    score > 75         → Green
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from resourcehub.core.exceptions import ValidationError


DIMENSION_KEYS = (
    "sprint_planning_effectiveness",
    "backlog_readiness",
    "team_collaboration",
    "daily_scrum_effectiveness",
    "sprint_execution_discipline",
    "sprint_review_quality",
    "retrospective_effectiveness",
)

DIMENSION_LABELS = {
    "sprint_planning_effectiveness": "Sprint Planning Effectiveness",
    "backlog_readiness": "Backlog Readiness",
    "team_collaboration": "Team Collaboration",
    "daily_scrum_effectiveness": "Daily Scrum Effectiveness",
    "sprint_execution_discipline": "Sprint Execution Discipline",
    "sprint_review_quality": "Sprint Review Quality",
    "retrospective_effectiveness": "Retrospective Effectiveness",
}

OUTCOME_MULTIPLIERS = {
    "Success": 1.0,
    "AtRisk": 0.8,
    "Failure": 0.5,
}

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000

RED_THRESHOLD = 50
GREEN_THRESHOLD = 75
TREND_THRESHOLD = 2


def round_half_away(value: float, places: int = 0) -> float:
    """Round to ``places`` decimals, ties away from zero (2.25 → 2.3, -2.5 → -3)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _coerce_rating(value) -> int | None:
    """Return the rating as int, or None when it is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def validate_dimensions(dimensions: dict | None, keys=DIMENSION_KEYS) -> dict[str, str]:
    """Check every dimension in ``keys``.

    Returns:
        ``{dimension_key: message}`` for each missing or invalid dimension;
        empty when all are valid.
    """
    dimensions = dimensions or {}
    errors: dict[str, str] = {}
    for key in keys:
        dim = dimensions.get(key)
        if not isinstance(dim, dict) or "rating" not in dim or dim.get("rating") is None:
            errors[key] = f"{key} is required"
            continue
        rating = _coerce_rating(dim["rating"])
        if rating is None:
            errors[key] = f"{key}.rating must be a whole number"
        elif not MIN_RATING <= rating <= MAX_RATING:
            errors[key] = f"{key}.rating must be between {MIN_RATING} and {MAX_RATING}"
        comment = dim.get("comment")
        if comment is not None and not isinstance(comment, str):
            errors[key] = f"{key}.comment must be a string"
        elif comment and len(comment) > MAX_COMMENT_LENGTH:
            errors[key] = f"{key}.comment must be at most {MAX_COMMENT_LENGTH} characters"
    return errors


def normalize_dimension(dim: dict) -> dict:
    """Canonical stored form: ``{"rating": int, "comment": str}``."""
    return {
        "rating": _coerce_rating(dim["rating"]),
        "comment": (dim.get("comment") or "").strip(),
    }


def _require_outcome(outcome: str) -> float:
    try:
        return OUTCOME_MULTIPLIERS[outcome]
    except (KeyError, TypeError):
        raise ValidationError(
            "Invalid outcome. Must be Success, AtRisk, or Failure",
            details={"overall_outcome": f"unknown outcome {outcome!r}"},
        ) from None


def calculate_overall_score(dimensions: dict, outcome: str) -> float:
    """Convert seven 1–5 ratings plus the sprint outcome into a 0–100 score.

    Raises:
        ValidationError: a dimension is missing or out of range, or the
            outcome is not one of Success / AtRisk / Failure.
    """
    errors = validate_dimensions(dimensions)
    if errors:
        raise ValidationError(
            f"Missing or invalid ratings for: {', '.join(errors)}",
            details=errors,
        )
    multiplier = _require_outcome(outcome)

    ratings = [_coerce_rating(dimensions[key]["rating"]) for key in DIMENSION_KEYS]
    average = sum(ratings) / len(ratings)
    base_score = (average / MAX_RATING) * 100
    return round_half_away(base_score * multiplier, 1)


def calculate_rag_status(score: float) -> str:
    if score < RED_THRESHOLD:
        return "Red"
    if score <= GREEN_THRESHOLD:
        return "Amber"
    return "Green"


def get_health_trend(previous_score: float | None, current_score: float) -> dict:
    """Compare two consecutive health scores.

    A missing or zero previous score reports ``{"direction": "new",
    "percentage": 0}``; a percentage change against zero is undefined.

    Returns:
        ``{"direction", "percentage", "difference"}`` where percentage is
        the absolute rounded percentage change and difference the signed
        delta rounded to one decimal.
    """
    if not previous_score:
        return {"direction": "new", "percentage": 0}

    # Scores carry one decimal; subtract in decimal so 72.3 - 70.3 is exactly 2.
    difference = float(Decimal(str(current_score)) - Decimal(str(previous_score)))
    percentage_change = round_half_away((difference / previous_score) * 100)

    direction = "stable"
    if difference > TREND_THRESHOLD:
        direction = "improving"
    elif difference < -TREND_THRESHOLD:
        direction = "declining"

    return {
        "direction": direction,
        "percentage": int(abs(percentage_change)),
        "difference": round_half_away(difference, 1),
    }
