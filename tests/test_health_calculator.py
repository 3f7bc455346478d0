"""
Unit tests for the sprint health scoring engine.

Covers:
  - overall score from seven ratings and the outcome multiplier
  - RAG banding incl. both Amber boundaries
  - trend direction / percentage between consecutive scores
  - dimension validation and half-away-from-zero rounding
"""

import pytest

from resourcehub.core.exceptions import ValidationError
from resourcehub.services.health_calculator import (
    DIMENSION_KEYS,
    calculate_overall_score,
    calculate_rag_status,
    get_health_trend,
    normalize_dimension,
    round_half_away,
    validate_dimensions,
)


def _dims(*ratings):
    return {key: {"rating": r} for key, r in zip(DIMENSION_KEYS, ratings)}


# ── calculate_overall_score ──────────────────────────────────────────────


class TestOverallScore:
    def test_all_fours_success(self):
        assert calculate_overall_score(_dims(4, 4, 4, 4, 4, 4, 4), "Success") == 80.0

    def test_all_fives_success_is_hundred(self):
        assert calculate_overall_score(_dims(5, 5, 5, 5, 5, 5, 5), "Success") == 100.0

    def test_all_ones_success_is_twenty(self):
        assert calculate_overall_score(_dims(1, 1, 1, 1, 1, 1, 1), "Success") == 20.0

    def test_all_fives_failure_is_fifty(self):
        assert calculate_overall_score(_dims(5, 5, 5, 5, 5, 5, 5), "Failure") == 50.0

    def test_deterministic(self):
        dims = _dims(5, 4, 4, 3, 4, 5, 4)
        assert calculate_overall_score(dims, "AtRisk") == calculate_overall_score(dims, "AtRisk")

    def test_all_ones_failure_is_ten(self):
        assert calculate_overall_score(_dims(1, 1, 1, 1, 1, 1, 1), "Failure") == 10.0

    def test_at_risk_multiplier(self):
        assert calculate_overall_score(_dims(4, 4, 4, 4, 4, 4, 4), "AtRisk") == 64.0

    def test_failure_multiplier(self):
        assert calculate_overall_score(_dims(3, 3, 3, 3, 3, 3, 3), "Failure") == 30.0

    def test_mixed_ratings_round_to_one_decimal(self):
        # 29 / 7 / 5 * 100 = 82.857...
        assert calculate_overall_score(_dims(5, 4, 4, 3, 4, 5, 4), "Success") == 82.9

    def test_missing_dimension_raises(self):
        dims = _dims(4, 4, 4, 4, 4, 4, 4)
        del dims["backlog_readiness"]
        with pytest.raises(ValidationError) as exc:
            calculate_overall_score(dims, "Success")
        assert "backlog_readiness" in exc.value.details

    def test_out_of_range_rating_raises(self):
        with pytest.raises(ValidationError):
            calculate_overall_score(_dims(6, 4, 4, 4, 4, 4, 4), "Success")

    def test_unknown_outcome_raises(self):
        with pytest.raises(ValidationError) as exc:
            calculate_overall_score(_dims(4, 4, 4, 4, 4, 4, 4), "Cancelled")
        assert "overall_outcome" in exc.value.details


# ── calculate_rag_status ─────────────────────────────────────────────────


@pytest.mark.parametrize("score,expected", [
    (0, "Red"),
    (49.9, "Red"),
    (50, "Amber"),
    (64.0, "Amber"),
    (75, "Amber"),
    (75.1, "Green"),
    (100, "Green"),
])
def test_rag_bands(score, expected):
    assert calculate_rag_status(score) == expected


# ── get_health_trend ─────────────────────────────────────────────────────


class TestHealthTrend:
    def test_no_previous_is_new(self):
        assert get_health_trend(None, 80.0) == {"direction": "new", "percentage": 0}

    def test_zero_previous_is_new(self):
        assert get_health_trend(0, 80.0)["direction"] == "new"

    def test_improving(self):
        trend = get_health_trend(60.0, 80.0)
        assert trend["direction"] == "improving"
        assert trend["percentage"] == 33
        assert trend["difference"] == 20.0

    def test_declining(self):
        trend = get_health_trend(80.0, 60.0)
        assert trend["direction"] == "declining"
        assert trend["percentage"] == 25
        assert trend["difference"] == -20.0

    def test_small_improvement(self):
        assert get_health_trend(70.0, 75.0) == {"direction": "improving", "percentage": 7, "difference": 5.0}

    def test_just_over_threshold_improves(self):
        assert get_health_trend(70.0, 72.01)["direction"] == "improving"

    def test_difference_of_exactly_two_is_stable(self):
        trend = get_health_trend(70.3, 72.3)
        assert trend["direction"] == "stable"
        assert trend["difference"] == 2.0

    def test_small_drop_is_stable(self):
        assert get_health_trend(80.0, 78.5)["direction"] == "stable"


# ── validation / rounding ────────────────────────────────────────────────


def test_validate_dimensions_reports_each_problem():
    dims = _dims(4, 4, 4, 4, 4, 4, 4)
    dims["team_collaboration"] = {"rating": 0}
    dims["sprint_review_quality"] = {"rating": 2.5}
    del dims["retrospective_effectiveness"]

    errors = validate_dimensions(dims)

    assert set(errors) == {"team_collaboration", "sprint_review_quality", "retrospective_effectiveness"}


def test_validate_dimensions_accepts_integral_float():
    assert validate_dimensions(_dims(4.0, 4, 4, 4, 4, 4, 4)) == {}


def test_validate_dimensions_rejects_long_comment():
    dims = _dims(4, 4, 4, 4, 4, 4, 4)
    dims["backlog_readiness"]["comment"] = "x" * 1001
    assert "backlog_readiness" in validate_dimensions(dims)


def test_normalize_dimension_strips_comment():
    assert normalize_dimension({"rating": 3.0, "comment": "  ok "}) == {"rating": 3, "comment": "ok"}


@pytest.mark.parametrize("value,places,expected", [
    (2.25, 1, 2.3),
    (82.85, 1, 82.9),
    (2.5, 0, 3.0),
    (-2.5, 0, -3.0),
])
def test_round_half_away(value, places, expected):
    assert round_half_away(value, places) == expected
