"""
Per-environment settings for ResourceHub.

``create_app`` picks a class from ``config`` by name (APP_ENV) and
instantiates it, so ProductionConfig can refuse to start without the
variables it needs.
"""

import json
import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


def _db_url(fallback=None):
    url = os.getenv("DATABASE_URL", "")
    if url.startswith("postgres://"):
        # SQLAlchemy 2 only knows the postgresql:// scheme
        url = "postgresql://" + url[len("postgres://"):]
    return url or fallback


def _alert_recipient_roles():
    """Alert type → roles that receive it, from a JSON env var."""
    raw = os.getenv("ALERT_RECIPIENT_ROLES")
    return json.loads(raw) if raw else {"default": ["PM", "Admin"]}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL")

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = _env_int("JWT_ACCESS_EXPIRES", 3600)
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "true")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10/minute")

    AT_RISK_STREAK_THRESHOLD = _env_int("AT_RISK_STREAK_THRESHOLD", 3)
    ALERT_DEDUP_WINDOW_HOURS = _env_int("ALERT_DEDUP_WINDOW_HOURS", 24)
    ALERT_RECIPIENT_ROLES = _alert_recipient_roles()


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _db_url(
        "sqlite:///" + os.path.join(basedir, "instance", "resourcehub_dev.db")
    )
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "false")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-of-sufficient-length"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    # tests switch auth on with the auth_on fixture
    API_AUTH_ENABLED = "false"
    RATELIMIT_ENABLED = False
    ALERT_RECIPIENT_ROLES = {"default": ["PM", "Admin"]}


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _db_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }

    def __init__(self):
        missing = [name for name in ("DATABASE_URL", "SECRET_KEY") if not os.getenv(name)]
        if missing:
            raise RuntimeError(f"Production requires: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
