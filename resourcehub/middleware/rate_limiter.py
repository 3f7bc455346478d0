"""
Flask-Limiter limits, attached per blueprint after registration.

Keyed on remote address. Skipped entirely when TESTING is set.
"""

import logging

logger = logging.getLogger(__name__)

BLUEPRINT_LIMITS = {
    "project_bp": "120/minute",
    "resource_bp": "120/minute",
    "allocation_bp": "120/minute",
    "sprint_health_bp": "120/minute",
    "alert_bp": "120/minute",
    "user_bp": "120/minute",
    "dashboard_bp": "300/minute",
    "report_bp": "300/minute",
}


def init_rate_limits(app, limiter):
    if app.config.get("TESTING"):
        return

    limits = dict(BLUEPRINT_LIMITS, auth_bp=app.config.get("AUTH_RATE_LIMIT", "10/minute"))
    for name, limit in limits.items():
        bp = app.blueprints.get(name)
        if bp is not None:
            limiter.limit(limit)(bp)

    if "health_bp" in app.blueprints:
        limiter.exempt(app.blueprints["health_bp"])
    logger.debug("Rate limits attached to %d blueprints", len(limits))
