"""
ResourceHub
Alert domain model.

Models:
    - Alert: in-app alert record, one row per recipient per event
"""

from datetime import datetime, timezone

from resourcehub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

ALERT_TYPES = {
    "sprint_failure", "sprint_at_risk", "over_allocation",
    "project_deadline", "resource_conflict", "system",
}
ALERT_SEVERITIES = {"low", "medium", "high", "critical"}


class Alert(db.Model):
    __tablename__ = "alerts"
    __table_args__ = (
        db.Index("ix_alerts_user_read_created", "user_id", "is_read", "created_at"),
        db.Index("ix_alerts_type_project_created", "type", "project_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(30), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    severity = db.Column(db.String(10), nullable=False, default="medium")
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        comment="Recipient",
    )

    # Link to source entities
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True)
    sprint_id = db.Column(db.Integer, db.ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id", ondelete="SET NULL"), nullable=True)

    # Read tracking
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = db.relationship("Project")
    sprint = db.relationship("Sprint")
    resource = db.relationship("Resource")

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "severity": self.severity,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "sprint_id": self.sprint_id,
            "sprint_number": self.sprint.sprint_number if self.sprint else None,
            "resource_id": self.resource_id,
            "resource_name": self.resource.name if self.resource else None,
            "is_read": self.is_read,
            "is_archived": self.is_archived,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "metadata": self.meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Alert {self.id}: {self.type} → user {self.user_id}>"
