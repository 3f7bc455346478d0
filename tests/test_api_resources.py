"""
Resource API tests.

Covers:
  - create / validate / update / delete with live-allocation guard
  - list filters (role, skill search, min availability)
  - availability and utilization over a date window
"""

from datetime import date, timedelta

from resourcehub.models import db
from resourcehub.models.resource import ResourceAllocation
from resourcehub.services import resource_service

START = date.today() + timedelta(days=7)
END = START + timedelta(days=13)


def _allocate(client, resource, project, pct, start=START, end=END):
    res = client.post("/api/v1/allocations", json={
        "resource_id": resource["id"],
        "project_id": project["id"],
        "allocation_percentage": pct,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    })
    assert res.status_code == 201
    return res.get_json()["data"]


class TestResourceCrud:
    def test_create_defaults(self, client):
        res = client.post("/api/v1/resources", json={"name": "Walter Skinner", "role": "Architect"})
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["availability_percentage"] == 100
        assert data["employment_type"] == "FullTime"
        assert data["skills"] == []

    def test_skills_from_comma_string(self, client):
        res = client.post("/api/v1/resources", json={
            "name": "Monica Reyes", "role": "QA", "skills": "Selenium, Cypress ,",
        })
        assert res.get_json()["data"]["skills"] == ["Selenium", "Cypress"]

    def test_validation(self, client):
        res = client.post("/api/v1/resources", json={
            "name": "A", "role": "", "availability_percentage": 150, "employment_type": "Intern",
        })
        assert res.status_code == 400
        details = res.get_json()["details"]
        assert set(details) == {"name", "role", "availability_percentage", "employment_type"}

    def test_get_and_update(self, client, resource):
        res = client.put(f"/api/v1/resources/{resource['id']}", json={"availability_percentage": 60})
        assert res.get_json()["data"]["availability_percentage"] == 60
        data = client.get(f"/api/v1/resources/{resource['id']}").get_json()["data"]
        assert data["name"] == "Dana Scully"

    def test_unknown_resource_404(self, client):
        assert client.get("/api/v1/resources/9999").status_code == 404

    def test_delete_blocked_by_live_allocation(self, client, resource, project):
        _allocate(client, resource, project, 50)
        res = client.delete(f"/api/v1/resources/{resource['id']}")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Cannot delete resource with 1 active allocations"

    def test_delete_with_past_allocations_only(self, client, resource, project):
        past = date.today() - timedelta(days=30)
        _allocate(client, resource, project, 50, past, past + timedelta(days=5))
        res = client.delete(f"/api/v1/resources/{resource['id']}")
        assert res.status_code == 200
        assert ResourceAllocation.query.count() == 0


class TestResourceQueries:
    def _seed(self, client):
        for body in (
            {"name": "Ada", "role": "Developer", "skills": ["Python"], "availability_percentage": 100},
            {"name": "Grace", "role": "Developer", "skills": ["COBOL"], "availability_percentage": 40},
            {"name": "Linus", "role": "Architect", "skills": ["C", "Python"]},
        ):
            client.post("/api/v1/resources", json=body)

    def test_filters(self, client):
        self._seed(client)

        def names(query):
            return [r["name"] for r in client.get(f"/api/v1/resources{query}").get_json()["data"]]

        assert names("?role=Developer") == ["Ada", "Grace"]
        assert names("?search=python") == ["Ada", "Linus"]
        assert names("?search=gra") == ["Grace"]
        assert names("?min_availability=50") == ["Ada", "Linus"]

    def test_available_requires_dates(self, client):
        res = client.get("/api/v1/resources/available")
        assert res.status_code == 400

    def test_available_subtracts_overlapping(self, client, resource, project):
        _allocate(client, resource, project, 70)
        url = f"/api/v1/resources/available?start_date={START}&end_date={END}"

        rows = client.get(url).get_json()["data"]
        assert rows[0]["total_allocated"] == 70
        assert rows[0]["available_percentage"] == 30
        assert len(rows[0]["current_allocations"]) == 1

        assert client.get(f"{url}&min_availability=50").get_json()["data"] == []

    def test_available_outside_window(self, client, resource, project):
        _allocate(client, resource, project, 70)
        later = END + timedelta(days=1)
        rows = client.get(
            f"/api/v1/resources/available?start_date={later}&end_date={later + timedelta(days=3)}"
        ).get_json()["data"]
        assert rows[0]["available_percentage"] == 100

    def test_utilization(self, client, resource, project):
        _allocate(client, resource, project, 40)
        _allocate(client, resource, project, 30, END + timedelta(days=1), END + timedelta(days=9))
        rows = client.get("/api/v1/resources/utilization").get_json()["data"]
        assert rows[0]["total_allocated"] == 70
        assert rows[0]["allocations_count"] == 2
        assert rows[0]["over_allocated"] is False

    def test_utilization_flags_over_allocation(self, resource, project):
        for _ in range(2):
            db.session.add(ResourceAllocation(
                resource_id=resource["id"], project_id=project["id"],
                allocation_percentage=60, start_date=START, end_date=END,
            ))
        db.session.commit()
        row = resource_service.utilization()[0]
        assert row["total_allocated"] == 120
        assert row["utilization_percentage"] == 100
        assert row["over_allocated"] is True

    def test_resource_allocations(self, client, resource, project):
        _allocate(client, resource, project, 20)
        later = _allocate(client, resource, project, 20, END + timedelta(days=1), END + timedelta(days=5))
        rows = client.get(f"/api/v1/resources/{resource['id']}/allocations").get_json()["data"]
        assert [r["id"] for r in rows][0] == later["id"]
