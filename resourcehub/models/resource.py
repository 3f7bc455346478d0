"""
ResourceHub
Resource & allocation domain models.

Models:
    - Resource: a person whose capacity is ``availability_percentage``
    - ResourceAllocation: share of a resource committed to a project
      over an inclusive date range
"""

from datetime import datetime, timezone

from resourcehub.models import db


EMPLOYMENT_TYPES = {"FullTime", "PartTime", "Contractor"}

DEFAULT_CAPACITY = 100


class Resource(db.Model):
    __tablename__ = "resources"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    role = db.Column(db.String(100), nullable=False)
    skills = db.Column(db.JSON, default=list)
    employment_type = db.Column(db.String(20), nullable=False, default="FullTime")
    availability_percentage = db.Column(db.Integer, nullable=False, default=DEFAULT_CAPACITY, comment="0-100")
    cost_rate = db.Column(db.Float, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    allocations = db.relationship(
        "ResourceAllocation", back_populates="resource", cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def capacity(self):
        if self.availability_percentage is None:
            return DEFAULT_CAPACITY
        return self.availability_percentage

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "skills": list(self.skills or []),
            "employment_type": self.employment_type,
            "availability_percentage": self.availability_percentage,
            "cost_rate": self.cost_rate,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Resource {self.id}: {self.name}>"


class ResourceAllocation(db.Model):
    __tablename__ = "resource_allocations"
    __table_args__ = (
        db.CheckConstraint("end_date >= start_date", name="ck_allocation_dates"),
        db.CheckConstraint(
            "allocation_percentage >= 0 AND allocation_percentage <= 100",
            name="ck_allocation_percentage",
        ),
        db.Index("ix_allocation_resource_dates", "resource_id", "start_date", "end_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    sprint_id = db.Column(db.Integer, db.ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True)
    allocation_percentage = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    resource = db.relationship("Resource", back_populates="allocations")
    project = db.relationship("Project", back_populates="allocations")

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "resource_name": self.resource.name if self.resource else None,
            "resource_role": self.resource.role if self.resource else None,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "sprint_id": self.sprint_id,
            "allocation_percentage": self.allocation_percentage,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }

    def __repr__(self):
        return (f"<ResourceAllocation {self.id}: resource={self.resource_id} "
                f"{self.allocation_percentage}% {self.start_date}..{self.end_date}>")
