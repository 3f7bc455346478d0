"""
Shared pytest fixtures for the ResourceHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - auth_on: API_AUTH_ENABLED switched on for one test
    - pm_user / admin_user: users with a known role
    - project / sprint / resource: pre-created entities via the API

Helpers:
    - make_user(role, email): create a user directly
    - auth_headers(user): Authorization header for a user
    - dims(rating, **overrides): seven-dimension health payload
    - sprint_payload(number, start): sprint body with 14-day cadence
"""

from datetime import date, timedelta

import pytest

from resourcehub import create_app
from resourcehub.models import db as _db
from resourcehub.models.auth import User
from resourcehub.services.health_calculator import DIMENSION_KEYS
from resourcehub.services.jwt_service import generate_access_token
from resourcehub.utils.crypto import hash_password


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def auth_on(app):
    """Enforce bearer tokens for the duration of one test."""
    previous = app.config["API_AUTH_ENABLED"]
    app.config["API_AUTH_ENABLED"] = "true"
    yield
    app.config["API_AUTH_ENABLED"] = previous


# ── Helpers ──────────────────────────────────────────────────────────────


def make_user(role="PM", email=None, password="password123"):
    user = User(
        name=f"{role} User",
        email=email or f"{role.lower()}@example.com",
        password_hash=hash_password(password),
        role=role,
    )
    _db.session.add(user)
    _db.session.commit()
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {generate_access_token(user.id, user.role)}"}


def dims(rating=4, **overrides):
    """Health payload with every dimension at ``rating``; overrides by key."""
    payload = {key: {"rating": rating, "comment": ""} for key in DIMENSION_KEYS}
    for key, value in overrides.items():
        payload[key] = {"rating": value, "comment": ""}
    return payload


SPRINT_BASE = date.today() - timedelta(days=120)


def sprint_payload(number, start=None, length=14):
    start = start or SPRINT_BASE + timedelta(days=length * (number - 1))
    return {
        "sprint_number": number,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=length - 1)).isoformat(),
        "sprint_goal": f"Deliver increment {number}",
    }


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def pm_user():
    return make_user("PM")


@pytest.fixture()
def admin_user():
    return make_user("Admin")


@pytest.fixture()
def project(client):
    """Create and return a test Project via the API."""
    res = client.post("/api/v1/projects", json={
        "name": "Atlas Migration",
        "client": "Globex",
        "start_date": (date.today() - timedelta(days=200)).isoformat(),
        "methodology": "Scrum",
    })
    assert res.status_code == 201
    return res.get_json()["data"]


@pytest.fixture()
def sprint(client, project):
    """First sprint of ``project``."""
    res = client.post(f"/api/v1/projects/{project['id']}/sprints", json=sprint_payload(1))
    assert res.status_code == 201
    return res.get_json()["data"]


@pytest.fixture()
def resource(client):
    res = client.post("/api/v1/resources", json={
        "name": "Dana Scully",
        "role": "Developer",
        "skills": ["Python", "SQL"],
        "availability_percentage": 100,
    })
    assert res.status_code == 201
    return res.get_json()["data"]
