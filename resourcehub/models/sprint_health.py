"""
ResourceHub
Sprint health domain model.

One SprintHealth per Sprint (unique FK). Each of the seven Scrum
dimensions is stored as a JSON ``{"rating": int, "comment": str}`` object.
``overall_health_score`` and ``rag_status`` are written only by
``services.sprint_health_service`` from the health calculator.
"""

from datetime import datetime, timezone

from resourcehub.models import db
from resourcehub.services.health_calculator import DIMENSION_KEYS


class SprintHealth(db.Model):
    __tablename__ = "sprint_health"

    id = db.Column(db.Integer, primary_key=True)
    sprint_id = db.Column(
        db.Integer, db.ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # ── Scrum dimensions ─────────────────────────────────────────────────
    sprint_planning_effectiveness = db.Column(db.JSON, nullable=False)
    backlog_readiness = db.Column(db.JSON, nullable=False)
    team_collaboration = db.Column(db.JSON, nullable=False)
    daily_scrum_effectiveness = db.Column(db.JSON, nullable=False)
    sprint_execution_discipline = db.Column(db.JSON, nullable=False)
    sprint_review_quality = db.Column(db.JSON, nullable=False)
    retrospective_effectiveness = db.Column(db.JSON, nullable=False)

    # ── Derived ──────────────────────────────────────────────────────────
    overall_health_score = db.Column(db.Float, nullable=False, default=0.0, comment="0-100, one decimal")
    rag_status = db.Column(db.String(10), nullable=False, default="Green", comment="Red/Amber/Green")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    sprint = db.relationship("Sprint", back_populates="health")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    updated_by = db.relationship("User", foreign_keys=[updated_by_id])

    @property
    def dimensions(self):
        """All seven dimensions as ``{key: {"rating", "comment"}}``."""
        return {key: dict(getattr(self, key) or {}) for key in DIMENSION_KEYS}

    def ratings(self):
        """``{key: rating}``: convenience for reports."""
        return {key: (getattr(self, key) or {}).get("rating") for key in DIMENSION_KEYS}

    def to_dict(self):
        result = {
            "id": self.id,
            "sprint_id": self.sprint_id,
            "sprint_number": self.sprint.sprint_number if self.sprint else None,
            "project_id": self.sprint.project_id if self.sprint else None,
            "overall_health_score": self.overall_health_score,
            "rag_status": self.rag_status,
            "created_by": self.created_by.to_summary() if self.created_by else None,
            "updated_by": self.updated_by.to_summary() if self.updated_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        result.update(self.dimensions)
        return result

    def __repr__(self):
        return f"<SprintHealth sprint={self.sprint_id}: {self.overall_health_score} {self.rag_status}>"
