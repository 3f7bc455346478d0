"""
ResourceHub
Project & Sprint domain models.

Models:
    - Project: client engagement tracked on the portfolio dashboard
    - Sprint: time-boxed iteration of a project, carries the sprint outcome

Architecture chain: Project → Sprint → SprintHealth
"""

from datetime import datetime, timezone

from resourcehub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_STATUSES = {"Active", "OnHold", "Completed"}
PROJECT_METHODOLOGIES = {"Scrum", "Kanban"}
RAG_STATUSES = {"Green", "Amber", "Red"}

SPRINT_TYPES = {"Delivery", "Hardening", "Discovery"}
GOAL_ACHIEVEMENTS = {"Achieved", "PartiallyAchieved", "NotAchieved"}
SPRINT_OUTCOMES = {"Success", "AtRisk", "Failure"}
FAILURE_REASONS = {"ScopeChange", "Dependency", "ResourceIssues", "TechnicalDebt", "ExternalFactors"}


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT
# ═══════════════════════════════════════════════════════════════════════════

class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    client = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    methodology = db.Column(db.String(20), nullable=False, default="Scrum")
    status = db.Column(db.String(20), nullable=False, default="Active", index=True)
    current_health = db.Column(db.String(10), nullable=False, default="Green", comment="Green/Amber/Red")
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    sprints = db.relationship(
        "Sprint", back_populates="project", cascade="all, delete-orphan",
        passive_deletes=True, order_by="Sprint.sprint_number",
    )
    allocations = db.relationship(
        "ResourceAllocation", back_populates="project", cascade="all, delete-orphan",
        passive_deletes=True,
    )
    created_by = db.relationship("User", foreign_keys=[created_by_id])

    def to_dict(self, include_sprints=False):
        result = {
            "id": self.id,
            "name": self.name,
            "client": self.client,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "methodology": self.methodology,
            "status": self.status,
            "current_health": self.current_health,
            "created_by": self.created_by.to_summary() if self.created_by else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_sprints:
            result["sprints"] = [s.to_dict() for s in self.sprints]
        return result

    def __repr__(self):
        return f"<Project {self.id}: {self.name[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  SPRINT
# ═══════════════════════════════════════════════════════════════════════════

class Sprint(db.Model):
    """
    A sprint of a project.

    ``overall_outcome`` lives here rather than on SprintHealth; the health
    scorer receives it as an explicit argument.
    """

    __tablename__ = "sprints"
    __table_args__ = (
        db.UniqueConstraint("project_id", "sprint_number", name="uq_sprint_project_number"),
        db.CheckConstraint("end_date >= start_date", name="ck_sprint_dates"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    sprint_number = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False)
    sprint_goal = db.Column(db.String(500), nullable=False)
    sprint_type = db.Column(db.String(20), nullable=False, default="Delivery")

    # Outcome (written alongside sprint-health records)
    goal_achievement = db.Column(db.String(20), default="Achieved")
    overall_outcome = db.Column(db.String(10), nullable=False, default="Success", index=True)
    failure_reasons = db.Column(db.JSON, default=list)
    comments = db.Column(db.String(2000), default="")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    project = db.relationship("Project", back_populates="sprints")
    health = db.relationship(
        "SprintHealth", back_populates="sprint", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def status_on(self, today):
        """planned / active / completed relative to ``today``."""
        if self.start_date <= today <= self.end_date:
            return "active"
        if today > self.end_date:
            return "completed"
        return "planned"

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "sprint_number": self.sprint_number,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "sprint_goal": self.sprint_goal,
            "sprint_type": self.sprint_type,
            "goal_achievement": self.goal_achievement,
            "overall_outcome": self.overall_outcome,
            "failure_reasons": list(self.failure_reasons or []),
            "comments": self.comments or "",
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Sprint {self.id}: #{self.sprint_number} project={self.project_id}>"
