"""
Sprint health API tests.

Covers:
  - POST /sprints/<id>/health: score, RAG, outcome fields, 409 on duplicate
  - validation errors for ratings / outcome / failure reasons
  - PUT merge semantics and recalculation
  - GET current record with previous sprint trend, and history
  - outcome alerts: failure alert once, consecutive at-risk alert deduplicated
"""

import pytest
from conftest import dims, make_user, sprint_payload

from resourcehub.models.alert import Alert
from resourcehub.models.project import Sprint
from resourcehub.models import db


def _health(client, sprint_id, rating=4, outcome="Success", **extra):
    body = dims(rating)
    body["overall_outcome"] = outcome
    body.update(extra)
    return client.post(f"/api/v1/sprints/{sprint_id}/health", json=body)


def _new_sprint(client, project, number):
    res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=sprint_payload(number))
    assert res.status_code == 201
    return res.get_json()["data"]


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateHealth:
    def test_create_scores_and_stores_outcome(self, client, sprint):
        res = _health(client, sprint["id"], goal_achievement="Achieved", comments="Solid sprint")
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["overall_health_score"] == 80.0
        assert data["rag_status"] == "Green"
        assert data["backlog_readiness"] == {"rating": 4, "comment": ""}
        assert data["sprint_number"] == 1

        stored = db.session.get(Sprint, sprint["id"])
        assert stored.overall_outcome == "Success"
        assert stored.goal_achievement == "Achieved"
        assert stored.comments == "Solid sprint"
        assert stored.failure_reasons == []

    def test_at_risk_lowers_score(self, client, sprint):
        data = _health(client, sprint["id"], rating=4, outcome="AtRisk").get_json()["data"]
        assert data["overall_health_score"] == 64.0
        assert data["rag_status"] == "Amber"

    def test_duplicate_returns_409(self, client, sprint):
        assert _health(client, sprint["id"]).status_code == 201
        res = _health(client, sprint["id"])
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_unknown_sprint_404(self, client):
        assert _health(client, 9999).status_code == 404

    def test_missing_dimension(self, client, sprint):
        body = dims(4)
        del body["team_collaboration"]
        body["overall_outcome"] = "Success"
        res = client.post(f"/api/v1/sprints/{sprint['id']}/health", json=body)
        assert res.status_code == 400
        assert "team_collaboration" in res.get_json()["details"]

    def test_rating_out_of_range(self, client, sprint):
        body = dims(4, sprint_review_quality=0)
        body["overall_outcome"] = "Success"
        res = client.post(f"/api/v1/sprints/{sprint['id']}/health", json=body)
        assert res.status_code == 400
        assert "sprint_review_quality" in res.get_json()["details"]

    @pytest.mark.parametrize("outcome", [None, "Cancelled"])
    def test_outcome_required_and_known(self, client, sprint, outcome):
        body = dims(4)
        if outcome is not None:
            body["overall_outcome"] = outcome
        res = client.post(f"/api/v1/sprints/{sprint['id']}/health", json=body)
        assert res.status_code == 400
        assert "overall_outcome" in res.get_json()["details"]

    def test_unknown_failure_reason(self, client, sprint):
        res = _health(client, sprint["id"], outcome="Failure", failure_reasons=["Weather"])
        assert res.status_code == 400
        assert "failure_reasons" in res.get_json()["details"]

    def test_nothing_written_on_validation_error(self, client, sprint):
        _health(client, sprint["id"], outcome="Failure", failure_reasons=["Weather"])
        assert db.session.get(Sprint, sprint["id"]).overall_outcome == "Success"
        assert client.get(f"/api/v1/sprints/{sprint['id']}/health").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateHealth:
    def test_partial_update_merges_and_recalculates(self, client, sprint):
        body = dims(4)
        body["backlog_readiness"] = {"rating": 4, "comment": "Refined early"}
        body["overall_outcome"] = "Success"
        client.post(f"/api/v1/sprints/{sprint['id']}/health", json=body)

        res = client.put(f"/api/v1/sprints/{sprint['id']}/health",
                         json={"backlog_readiness": {"rating": 2}})
        assert res.status_code == 200
        data = res.get_json()["data"]
        # (6 * 4 + 2) / 7 / 5 * 100 = 74.28...
        assert data["overall_health_score"] == 74.3
        assert data["rag_status"] == "Amber"
        assert data["backlog_readiness"] == {"rating": 2, "comment": "Refined early"}
        assert data["team_collaboration"]["rating"] == 4

    def test_outcome_change_recalculates(self, client, sprint):
        _health(client, sprint["id"])
        res = client.put(f"/api/v1/sprints/{sprint['id']}/health",
                         json={"overall_outcome": "Failure", "failure_reasons": ["Dependency"]})
        data = res.get_json()["data"]
        assert data["overall_health_score"] == 40.0
        assert data["rag_status"] == "Red"
        assert db.session.get(Sprint, sprint["id"]).failure_reasons == ["Dependency"]

    def test_stored_outcome_used_when_omitted(self, client, sprint):
        _health(client, sprint["id"], outcome="AtRisk")
        res = client.put(f"/api/v1/sprints/{sprint['id']}/health",
                         json={"team_collaboration": {"rating": 4}})
        assert res.get_json()["data"]["overall_health_score"] == 64.0

    def test_update_without_record_404(self, client, sprint):
        res = client.put(f"/api/v1/sprints/{sprint['id']}/health", json={"overall_outcome": "Success"})
        assert res.status_code == 404

    def test_invalid_update_rejected(self, client, sprint):
        _health(client, sprint["id"])
        res = client.put(f"/api/v1/sprints/{sprint['id']}/health",
                         json={"daily_scrum_effectiveness": {"rating": 9}})
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# QUERY
# ═════════════════════════════════════════════════════════════════════════════


class TestGetHealth:
    def test_first_sprint_trend_is_new(self, client, sprint):
        _health(client, sprint["id"])
        body = client.get(f"/api/v1/sprints/{sprint['id']}/health").get_json()
        assert body["previous_health"] is None
        assert body["trend"] == {"direction": "new", "percentage": 0}
        assert body["data"]["sprint"]["sprint_number"] == 1

    def test_trend_against_previous_sprint(self, client, project, sprint):
        _health(client, sprint["id"], rating=3)       # 60.0
        second = _new_sprint(client, project, 2)
        _health(client, second["id"], rating=4)       # 80.0

        body = client.get(f"/api/v1/sprints/{second['id']}/health").get_json()
        assert body["previous_health"]["overall_health_score"] == 60.0
        assert body["trend"]["direction"] == "improving"
        assert body["trend"]["percentage"] == 33

    def test_history_up_to_sprint(self, client, project, sprint):
        _health(client, sprint["id"], rating=3)
        second = _new_sprint(client, project, 2)
        _health(client, second["id"], rating=5)
        third = _new_sprint(client, project, 3)
        _health(client, third["id"], rating=4)

        rows = client.get(f"/api/v1/sprints/{second['id']}/health/history").get_json()["data"]
        assert [r["sprint_number"] for r in rows] == [1, 2]
        assert rows[1]["overall_health_score"] == 100.0
        assert rows[1]["outcome"] == "Success"


# ═════════════════════════════════════════════════════════════════════════════
# ALERTS
# ═════════════════════════════════════════════════════════════════════════════


class TestOutcomeAlerts:
    def test_failure_alerts_managers_once(self, client, sprint):
        pm = make_user("PM")
        admin = make_user("Admin")
        make_user("Stakeholder")

        _health(client, sprint["id"], outcome="Failure", failure_reasons=["ScopeChange"])
        alerts = Alert.query.filter_by(type="sprint_failure").all()
        assert {a.user_id for a in alerts} == {pm.id, admin.id}
        assert alerts[0].severity == "critical"
        assert alerts[0].meta["sprint_number"] == 1

        # still Failure: no second alert
        client.put(f"/api/v1/sprints/{sprint['id']}/health", json={"overall_outcome": "Failure"})
        assert Alert.query.filter_by(type="sprint_failure").count() == 2

    def test_no_recipients_no_alerts(self, client, sprint):
        _health(client, sprint["id"], outcome="Failure")
        assert Alert.query.count() == 0

    def test_three_at_risk_sprints_alert_once(self, client, project, sprint):
        pm = make_user("PM")
        _health(client, sprint["id"], outcome="AtRisk")
        second = _new_sprint(client, project, 2)
        _health(client, second["id"], outcome="AtRisk")
        assert Alert.query.filter_by(type="sprint_at_risk").count() == 0

        third = _new_sprint(client, project, 3)
        _health(client, third["id"], outcome="AtRisk")
        alerts = Alert.query.filter_by(type="sprint_at_risk").all()
        assert len(alerts) == 1
        assert alerts[0].user_id == pm.id
        assert alerts[0].meta["consecutive_count"] == 3

        # streak continues inside the dedup window
        fourth = _new_sprint(client, project, 4)
        _health(client, fourth["id"], outcome="AtRisk")
        assert Alert.query.filter_by(type="sprint_at_risk").count() == 1

    def test_broken_streak_no_alert(self, client, project, sprint):
        make_user("PM")
        _health(client, sprint["id"], outcome="AtRisk")
        second = _new_sprint(client, project, 2)
        _health(client, second["id"], outcome="Success")
        third = _new_sprint(client, project, 3)
        _health(client, third["id"], outcome="AtRisk")
        assert Alert.query.filter_by(type="sprint_at_risk").count() == 0
