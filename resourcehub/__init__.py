"""
ResourceHub
Sprint health, resource allocation and portfolio reporting API.

    from resourcehub import create_app
    app = create_app()            # APP_ENV, else "development"
    app = create_app("testing")   # in-memory SQLite, auth off
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from resourcehub.config import config
from resourcehub.middleware.jwt_auth import init_jwt_middleware
from resourcehub.middleware.logging_config import configure_logging
from resourcehub.middleware.rate_limiter import init_rate_limits
from resourcehub.middleware.timing import init_request_timing
from resourcehub.models import db
from resourcehub.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 1024 * 1024


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    """SQLite ignores ON DELETE CASCADE / SET NULL unless foreign_keys is on."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
# Limits are attached per blueprint in init_rate_limits.
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def _init_cors(app):
    origins = app.config.get("CORS_ORIGINS") or "*"
    if origins == "*":
        CORS(app)
    else:
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])


def _register_blueprints(app):
    from resourcehub.blueprints.alert_bp import alert_bp
    from resourcehub.blueprints.allocation_bp import allocation_bp
    from resourcehub.blueprints.auth_bp import auth_bp
    from resourcehub.blueprints.dashboard_bp import dashboard_bp
    from resourcehub.blueprints.health_bp import health_bp
    from resourcehub.blueprints.project_bp import project_bp
    from resourcehub.blueprints.report_bp import report_bp
    from resourcehub.blueprints.resource_bp import resource_bp
    from resourcehub.blueprints.sprint_health_bp import sprint_health_bp
    from resourcehub.blueprints.user_bp import user_bp

    for bp in (auth_bp, user_bp, project_bp, sprint_health_bp, resource_bp,
               allocation_bp, alert_bp, dashboard_bp, report_bp, health_bp):
        app.register_blueprint(bp)


def create_app(config_name=None):
    """
    Build a configured ResourceHub application.

    Args:
        config_name: "development", "testing" or "production"; falls back to
                     the APP_ENV env var, then "development".
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    app.config.setdefault("MAX_CONTENT_LENGTH", MAX_BODY_BYTES)

    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    _init_cors(app)

    init_request_timing(app)
    init_jwt_middleware(app)

    # Model modules register their tables on db.metadata (Alembic + create_all).
    from resourcehub.models import alert, auth, project, resource, sprint_health  # noqa: F401

    if not app.config.get("TESTING"):
        with app.app_context():
            url = str(db.engine.url)
            if url.startswith("sqlite:///") and ":memory:" not in url:
                os.makedirs(app.instance_path, exist_ok=True)
            db.create_all()
        logger.info("Database ready env=%s", config_name)

    _register_blueprints(app)
    register_error_handlers(app)
    init_rate_limits(app, limiter)

    return app
