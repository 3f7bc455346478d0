"""
ResourceHub
Alert Service.

Central service for dispatching and querying in-app alerts. Recipients are
resolved by alert class through ``find_recipients`` (a role lookup driven by
the ``ALERT_RECIPIENT_ROLES`` config) rather than hard-coded role names.

Dispatch helpers (``notify_*``, ``check_consecutive_at_risk_sprints``) never
raise: they run after the primary write has committed, and a failure here is
logged and rolled back so the caller's response is unaffected.
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from resourcehub.core.exceptions import NotFoundError
from resourcehub.models import db
from resourcehub.models.alert import Alert
from resourcehub.models.auth import User
from resourcehub.models.project import Project, Sprint

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_ROLES = ("PM", "Admin")


class AlertService:
    """Stateless service class for alert operations."""

    # ── Recipients ────────────────────────────────────────────────────────

    @staticmethod
    def find_recipients(alert_type):
        """Return ids of every user who should receive ``alert_type`` alerts."""
        policy = current_app.config.get("ALERT_RECIPIENT_ROLES") or {}
        roles = policy.get(alert_type) or policy.get("default") or DEFAULT_RECIPIENT_ROLES
        rows = db.session.execute(
            db.select(User.id).where(User.role.in_(list(roles))).order_by(User.id)
        ).scalars().all()
        return list(rows)

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create_alert(alert_type, message, user_ids, *, severity="medium",
                     project_id=None, sprint_id=None, resource_id=None, meta=None):
        """
        Create one alert per recipient.

        Returns:
            List of created Alert instances (already committed); empty when
            there are no recipients.
        """
        if not user_ids:
            return []
        alerts = []
        for user_id in user_ids:
            alert = Alert(
                type=alert_type,
                message=message,
                severity=severity,
                user_id=user_id,
                project_id=project_id,
                sprint_id=sprint_id,
                resource_id=resource_id,
                meta=meta,
            )
            db.session.add(alert)
            alerts.append(alert)
        db.session.commit()
        logger.info("Alert dispatched type=%s recipients=%d project_id=%s",
                    alert_type, len(alerts), project_id)
        return alerts

    # ── Sprint outcome alerts ─────────────────────────────────────────────

    @staticmethod
    def notify_sprint_failure(sprint):
        """Alert managers that ``sprint`` was marked as Failure."""
        try:
            user_ids = AlertService.find_recipients("sprint_failure")
            if not user_ids:
                return []
            project = sprint.project
            message = f"Sprint #{sprint.sprint_number} in {project.name} was marked as FAILURE."
            return AlertService.create_alert(
                "sprint_failure", message, user_ids,
                severity="critical",
                project_id=project.id,
                sprint_id=sprint.id,
                meta={
                    "sprint_number": sprint.sprint_number,
                    "outcome": sprint.overall_outcome,
                    "project_name": project.name,
                },
            )
        except Exception:
            db.session.rollback()
            logger.exception("Sprint failure notification failed sprint_id=%s", sprint.id)
            return []

    @staticmethod
    def notify_consecutive_at_risk(project_id, consecutive_count, sprint_ids):
        """Alert managers about an at-risk streak, at most once per dedup window."""
        try:
            project = db.session.get(Project, project_id)
            if not project:
                return []
            user_ids = AlertService.find_recipients("sprint_at_risk")
            if not user_ids:
                return []

            window_hours = current_app.config.get("ALERT_DEDUP_WINDOW_HOURS", 24)
            since = datetime.now(timezone.utc) - timedelta(hours=window_hours)
            recent = db.session.execute(
                db.select(Alert.id).where(
                    Alert.type == "sprint_at_risk",
                    Alert.project_id == project_id,
                    Alert.created_at >= since,
                ).limit(1)
            ).first()
            if recent:
                logger.info("At-risk alert suppressed project_id=%s (sent within %sh)",
                            project_id, window_hours)
                return []

            message = f'Project "{project.name}" has {consecutive_count} consecutive at-risk sprints.'
            return AlertService.create_alert(
                "sprint_at_risk", message, user_ids,
                severity="critical",
                project_id=project_id,
                meta={
                    "project_name": project.name,
                    "consecutive_count": consecutive_count,
                    "sprint_ids": list(sprint_ids),
                },
            )
        except Exception:
            db.session.rollback()
            logger.exception("Consecutive at-risk notification failed project_id=%s", project_id)
            return []

    @staticmethod
    def check_consecutive_at_risk_sprints(project_id, threshold=None):
        """Dispatch an at-risk alert when the latest ``threshold`` sprints are all AtRisk."""
        if threshold is None:
            threshold = current_app.config.get("AT_RISK_STREAK_THRESHOLD", 3)
        try:
            sprints = db.session.execute(
                db.select(Sprint)
                .where(Sprint.project_id == project_id)
                .order_by(Sprint.start_date.desc())
                .limit(threshold)
            ).scalars().all()
        except Exception:
            db.session.rollback()
            logger.exception("Consecutive at-risk check failed project_id=%s", project_id)
            return []

        if len(sprints) < threshold:
            return []
        if not all(s.overall_outcome == "AtRisk" for s in sprints):
            return []
        return AlertService.notify_consecutive_at_risk(
            project_id, threshold, [s.id for s in sprints],
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(user_id, is_read=None, severity=None, alert_type=None, limit=50):
        """Non-archived alerts of a user, newest first, plus the unread count."""
        q = Alert.query.filter_by(user_id=user_id, is_archived=False)
        if is_read is not None:
            q = q.filter_by(is_read=is_read)
        if severity:
            q = q.filter_by(severity=severity)
        if alert_type:
            q = q.filter_by(type=alert_type)
        items = q.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit).all()
        return items, AlertService.unread_count(user_id)

    @staticmethod
    def unread_count(user_id):
        return Alert.query.filter_by(user_id=user_id, is_read=False, is_archived=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def _get_own(alert_id, user_id):
        alert = Alert.query.filter_by(id=alert_id, user_id=user_id).first()
        if not alert:
            raise NotFoundError(resource="Alert", resource_id=alert_id)
        return alert

    @staticmethod
    def mark_read(alert_id, user_id):
        alert = AlertService._get_own(alert_id, user_id)
        alert.mark_read()
        db.session.commit()
        return alert

    @staticmethod
    def mark_all_read(user_id):
        now = datetime.now(timezone.utc)
        count = Alert.query.filter_by(user_id=user_id, is_read=False).update(
            {"is_read": True, "read_at": now}, synchronize_session="fetch",
        )
        db.session.commit()
        return count

    @staticmethod
    def archive(alert_id, user_id):
        alert = AlertService._get_own(alert_id, user_id)
        alert.is_archived = True
        db.session.commit()
        return alert

    @staticmethod
    def delete(alert_id, user_id):
        alert = AlertService._get_own(alert_id, user_id)
        db.session.delete(alert)
        db.session.commit()
