"""
Project & Sprint API tests.

Covers:
  - project CRUD, unique name, date ordering, list filters
  - edit/delete permission rules (creator, Admin, PM)
  - project health summary
  - sprint CRUD, overlap and number conflicts, status filter and pagination
  - sprint status (planned / active / completed) and delete guard
"""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from conftest import auth_headers, dims, make_user, sprint_payload

from resourcehub.core.exceptions import NotFoundError, ValidationError
from resourcehub.services import project_service, sprint_service


def _project_body(name="Nova", **extra):
    body = {"name": name, "client": "Wayne Enterprises", "start_date": "2025-01-01"}
    body.update(extra)
    return body


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════


class TestProjects:
    def test_create_defaults(self, client):
        res = client.post("/api/v1/projects", json=_project_body())
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["status"] == "Active"
        assert data["methodology"] == "Scrum"
        assert data["current_health"] == "Green"

    def test_duplicate_name_409(self, client):
        client.post("/api/v1/projects", json=_project_body())
        res = client.post("/api/v1/projects", json=_project_body())
        assert res.status_code == 409

    def test_end_must_be_after_start(self, client):
        res = client.post("/api/v1/projects", json=_project_body(end_date="2025-01-01"))
        assert res.status_code == 400
        assert "end_date" in res.get_json()["details"]

    def test_missing_fields(self, client):
        res = client.post("/api/v1/projects", json={"name": "X"})
        assert res.status_code == 400
        details = res.get_json()["details"]
        assert "client" in details and "start_date" in details

    def test_invalid_status(self, client):
        res = client.post("/api/v1/projects", json=_project_body(status="Paused"))
        assert res.status_code == 400

    def test_list_filters(self, client):
        client.post("/api/v1/projects", json=_project_body("Nova"))
        client.post("/api/v1/projects", json=_project_body("Zephyr", client="Stark", status="OnHold"))

        assert client.get("/api/v1/projects").get_json()["total"] == 2
        assert client.get("/api/v1/projects?status=OnHold").get_json()["total"] == 1
        names = [p["name"] for p in client.get("/api/v1/projects?search=stark").get_json()["data"]]
        assert names == ["Zephyr"]

    def test_get_includes_sprints(self, client, project, sprint):
        data = client.get(f"/api/v1/projects/{project['id']}").get_json()["data"]
        assert [s["id"] for s in data["sprints"]] == [sprint["id"]]

    def test_update(self, client, project):
        res = client.put(f"/api/v1/projects/{project['id']}", json={"status": "Completed"})
        assert res.status_code == 200
        assert res.get_json()["data"]["status"] == "Completed"

    def test_rename_to_existing_409(self, client, project):
        client.post("/api/v1/projects", json=_project_body("Nova"))
        res = client.put(f"/api/v1/projects/{project['id']}", json={"name": "Nova"})
        assert res.status_code == 409

    def test_delete_cascades(self, client, project, sprint):
        client.post(f"/api/v1/sprints/{sprint['id']}/health",
                    json={**dims(4), "overall_outcome": "Success"})
        res = client.delete(f"/api/v1/projects/{project['id']}")
        assert res.get_json() == {"deleted": True, "id": project["id"]}
        assert client.get(f"/api/v1/sprints/{sprint['id']}").status_code == 404

    def test_unknown_project_404(self, client):
        res = client.get("/api/v1/projects/9999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestProjectPermissions:
    def _project(self, creator_id):
        return SimpleNamespace(created_by_id=creator_id)

    @pytest.mark.parametrize("role,own,expected", [
        ("Stakeholder", True, True),
        ("Stakeholder", False, False),
        ("TeamLead", False, False),
        ("PM", False, True),
        ("Admin", False, True),
    ])
    def test_can_edit(self, role, own, expected):
        user = SimpleNamespace(id=7, role=role)
        project = self._project(7 if own else 8)
        assert project_service.can_edit_project(project, user) is expected

    @pytest.mark.parametrize("role,own,expected", [
        ("PM", True, True),
        ("PM", False, False),
        ("Admin", False, True),
    ])
    def test_can_delete(self, role, own, expected):
        user = SimpleNamespace(id=7, role=role)
        project = self._project(7 if own else 8)
        assert project_service.can_delete_project(project, user) is expected

    def test_pm_cannot_delete_others_project(self, client, auth_on):
        creator = make_user("PM", email="creator@example.com")
        other = make_user("PM", email="other@example.com")
        created = client.post("/api/v1/projects", json=_project_body(),
                              headers=auth_headers(creator)).get_json()["data"]

        res = client.delete(f"/api/v1/projects/{created['id']}", headers=auth_headers(other))
        assert res.status_code == 403
        res = client.delete(f"/api/v1/projects/{created['id']}", headers=auth_headers(creator))
        assert res.status_code == 200


class TestProjectHealth:
    def test_no_sprints(self, client, project):
        data = client.get(f"/api/v1/projects/{project['id']}/health").get_json()["data"]
        assert data["health"] == "No data"
        assert data["total_sprints"] == 0

    def test_green_project(self, client, project, sprint):
        client.post(f"/api/v1/sprints/{sprint['id']}/health",
                    json={**dims(5), "overall_outcome": "Success"})
        data = client.get(f"/api/v1/projects/{project['id']}/health").get_json()["data"]
        assert data["avg_score"] == 100.0
        assert data["health"] == "Green"
        assert data["total_sprints"] == 1

    def test_red_when_average_low(self, client, project, sprint):
        client.post(f"/api/v1/sprints/{sprint['id']}/health",
                    json={**dims(2), "overall_outcome": "Failure"})
        data = client.get(f"/api/v1/projects/{project['id']}/health").get_json()["data"]
        assert data["health"] == "Red"
        assert data["failed_sprints"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# SPRINTS
# ═════════════════════════════════════════════════════════════════════════════


class TestSprints:
    def test_create(self, client, project):
        res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=sprint_payload(1))
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["sprint_type"] == "Delivery"
        assert data["overall_outcome"] == "Success"

    def test_overlapping_dates_409(self, client, project, sprint):
        body = sprint_payload(2, start=date.fromisoformat(sprint["end_date"]))
        res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=body)
        assert res.status_code == 409
        assert "#1" in res.get_json()["error"]

    def test_duplicate_number_409(self, client, project, sprint):
        body = sprint_payload(1, start=date.fromisoformat(sprint["end_date"]) + timedelta(days=1))
        res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=body)
        assert res.status_code == 409

    def test_end_before_start(self, client, project):
        body = sprint_payload(1)
        body["end_date"], body["start_date"] = body["start_date"], body["end_date"]
        res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=body)
        assert res.status_code == 400

    def test_single_day_sprint_allowed(self, client, project):
        res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=sprint_payload(1, length=1))
        assert res.status_code == 201

    def test_sprint_in_unknown_project(self, client):
        res = client.post("/api/v1/projects/9999/sprints", json=sprint_payload(1))
        assert res.status_code == 404

    def test_list_status_and_pagination(self, client, project):
        today = date.today()
        client.post(f"/api/v1/projects/{project['id']}/sprints",
                    json=sprint_payload(1, start=today - timedelta(days=40)))
        client.post(f"/api/v1/projects/{project['id']}/sprints",
                    json=sprint_payload(2, start=today - timedelta(days=5)))
        client.post(f"/api/v1/projects/{project['id']}/sprints",
                    json=sprint_payload(3, start=today + timedelta(days=30)))

        url = f"/api/v1/projects/{project['id']}/sprints"
        assert [s["sprint_number"] for s in client.get(url).get_json()["data"]] == [3, 2, 1]
        assert [s["sprint_number"] for s in client.get(f"{url}?status=active").get_json()["data"]] == [2]
        assert [s["sprint_number"] for s in client.get(f"{url}?status=upcoming").get_json()["data"]] == [3]
        assert [s["sprint_number"] for s in client.get(f"{url}?status=completed").get_json()["data"]] == [1]

        body = client.get(f"{url}?limit=2&page=2").get_json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert [s["sprint_number"] for s in body["data"]] == [1]

    def test_update_overlap_409(self, client, project, sprint):
        second = client.post(f"/api/v1/projects/{project['id']}/sprints",
                             json=sprint_payload(2)).get_json()["data"]
        res = client.put(f"/api/v1/sprints/{second['id']}", json={"start_date": sprint["end_date"]})
        assert res.status_code == 409

    def test_update_goal(self, client, sprint):
        res = client.put(f"/api/v1/sprints/{sprint['id']}", json={"sprint_goal": "Hardening"})
        assert res.get_json()["data"]["sprint_goal"] == "Hardening"

    def test_get_includes_status(self, client, sprint):
        data = client.get(f"/api/v1/sprints/{sprint['id']}").get_json()["data"]
        assert data["status"] == "completed"


class TestSprintStatusAndDelete:
    def test_status_active(self, project, sprint):
        start = date.fromisoformat(sprint["start_date"])
        status = sprint_service.get_sprint_status(sprint["id"], today=start + timedelta(days=3))
        assert status["status"] == "active"
        assert status["days_remaining"] == 10
        assert status["percent_complete"] == 23

    def test_status_planned_and_completed(self, project, sprint):
        start = date.fromisoformat(sprint["start_date"])
        end = date.fromisoformat(sprint["end_date"])
        planned = sprint_service.get_sprint_status(sprint["id"], today=start - timedelta(days=4))
        assert planned["status"] == "planned"
        assert planned["days_remaining"] == 4
        done = sprint_service.get_sprint_status(sprint["id"], today=end + timedelta(days=1))
        assert done["status"] == "completed"
        assert done["percent_complete"] == 100

    def test_status_endpoint(self, client, sprint):
        data = client.get(f"/api/v1/sprints/{sprint['id']}/status").get_json()["data"]
        assert data["sprint_id"] == sprint["id"]

    def test_completed_sprint_cannot_be_deleted(self, client, sprint):
        res = client.delete(f"/api/v1/sprints/{sprint['id']}")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Cannot delete completed sprint. Archive instead."

    def test_delete_current_sprint(self, project, sprint):
        start = date.fromisoformat(sprint["start_date"])
        sprint_service.delete_sprint(sprint["id"], today=start)
        with pytest.raises(NotFoundError):
            sprint_service.get_sprint(sprint["id"])

    def test_delete_guard_service(self, sprint):
        end = date.fromisoformat(sprint["end_date"])
        with pytest.raises(ValidationError):
            sprint_service.delete_sprint(sprint["id"], today=end + timedelta(days=1))
