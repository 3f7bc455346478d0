"""Resource CRUD, availability and utilization queries."""

from __future__ import annotations

import logging
from datetime import date

from resourcehub.core.exceptions import NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.resource import EMPLOYMENT_TYPES, Resource, ResourceAllocation

logger = logging.getLogger(__name__)


def get_resource(resource_id: int) -> Resource:
    resource = db.session.get(Resource, resource_id)
    if not resource:
        raise NotFoundError(resource="Resource", resource_id=resource_id)
    return resource


def _normalize_skills(skills):
    if isinstance(skills, list):
        return [str(s).strip() for s in skills if str(s).strip()]
    return [s.strip() for s in str(skills).split(",") if s.strip()]


def _validate(data: dict, *, partial: bool) -> dict:
    errors: dict[str, str] = {}
    fields: dict = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not 2 <= len(name) <= 100:
            errors["name"] = "name must be 2-100 characters"
        else:
            fields["name"] = name
    if "role" in data or not partial:
        role = str(data.get("role") or "").strip()
        if not role:
            errors["role"] = "role is required"
        else:
            fields["role"] = role

    if data.get("skills") is not None:
        fields["skills"] = _normalize_skills(data["skills"])

    employment_type = data.get("employment_type")
    if employment_type is not None:
        if employment_type not in EMPLOYMENT_TYPES:
            errors["employment_type"] = f"employment_type must be one of: {', '.join(sorted(EMPLOYMENT_TYPES))}"
        else:
            fields["employment_type"] = employment_type

    availability = data.get("availability_percentage")
    if availability is not None:
        if isinstance(availability, bool) or not isinstance(availability, int) or not 0 <= availability <= 100:
            errors["availability_percentage"] = "availability_percentage must be a whole number between 0 and 100"
        else:
            fields["availability_percentage"] = availability

    if "cost_rate" in data:
        cost_rate = data.get("cost_rate")
        if cost_rate is not None and (isinstance(cost_rate, bool) or not isinstance(cost_rate, (int, float))
                                      or cost_rate < 0):
            errors["cost_rate"] = "cost_rate must be a non-negative number"
        else:
            fields["cost_rate"] = cost_rate

    if "user_id" in data:
        fields["user_id"] = data.get("user_id")

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def list_resources(role=None, search=None, min_availability=None) -> list[Resource]:
    """Resources by name; ``search`` matches name case-insensitively or a skill."""
    resources = Resource.query
    if role:
        resources = resources.filter(Resource.role == role)
    if min_availability is not None:
        resources = resources.filter(Resource.availability_percentage >= min_availability)
    items = resources.order_by(Resource.name, Resource.id).all()
    # skills is a JSON column, filtered after load
    if search:
        needle = search.lower()
        items = [
            r for r in items
            if needle in r.name.lower() or any(needle in s.lower() for s in (r.skills or []))
        ]
    return items


def create_resource(data: dict) -> Resource:
    fields = _validate(data, partial=False)
    resource = Resource(**fields)
    db.session.add(resource)
    db.session.commit()
    logger.info("Resource created id=%s name=%s", resource.id, resource.name)
    return resource


def update_resource(resource_id: int, data: dict) -> Resource:
    resource = get_resource(resource_id)
    fields = _validate(data, partial=True)
    for key, value in fields.items():
        setattr(resource, key, value)
    db.session.commit()
    logger.info("Resource updated id=%s fields=%s", resource.id, sorted(fields))
    return resource


def delete_resource(resource_id: int, today: date | None = None) -> None:
    """Delete a resource and its past allocations; refused while any is still live."""
    resource = get_resource(resource_id)
    today = today or date.today()
    active = ResourceAllocation.query.filter(
        ResourceAllocation.resource_id == resource_id,
        ResourceAllocation.end_date >= today,
    ).count()
    if active:
        raise ValidationError(f"Cannot delete resource with {active} active allocations")
    db.session.delete(resource)
    db.session.commit()
    logger.info("Resource deleted id=%s", resource_id)


def _allocations_in(resource_id, start=None, end=None):
    q = ResourceAllocation.query.filter(ResourceAllocation.resource_id == resource_id)
    if start and end:
        q = q.filter(ResourceAllocation.start_date <= end, ResourceAllocation.end_date >= start)
    return q.order_by(ResourceAllocation.start_date).all()


def available_resources(start: date, end: date, min_availability: int = 0) -> list[dict]:
    """Resources with at least ``min_availability`` percent free over [start, end]."""
    if not start or not end:
        raise ValidationError("start_date and end_date are required")
    if end < start:
        raise ValidationError("End date must be on or after start date")

    result = []
    for resource in Resource.query.order_by(Resource.name, Resource.id).all():
        allocations = _allocations_in(resource.id, start, end)
        total = sum(a.allocation_percentage for a in allocations)
        available = max(resource.capacity - total, 0)
        if available >= min_availability:
            entry = resource.to_dict()
            entry.update({
                "current_allocations": [a.to_dict() for a in allocations],
                "total_allocated": total,
                "available_percentage": available,
            })
            result.append(entry)
    return result


def utilization(start: date | None = None, end: date | None = None) -> list[dict]:
    """Per-resource allocation totals, optionally restricted to a date window."""
    result = []
    for resource in Resource.query.order_by(Resource.name, Resource.id).all():
        allocations = _allocations_in(resource.id, start, end)
        total = sum(a.allocation_percentage for a in allocations)
        result.append({
            "resource_id": resource.id,
            "name": resource.name,
            "role": resource.role,
            "total_allocated": total,
            "utilization_percentage": min(total, 100),
            "over_allocated": total > resource.capacity,
            "allocations_count": len(allocations),
        })
    return result


def resource_allocations(resource_id: int) -> list[ResourceAllocation]:
    get_resource(resource_id)
    return (
        ResourceAllocation.query.filter_by(resource_id=resource_id)
        .order_by(ResourceAllocation.start_date.desc(), ResourceAllocation.id.desc())
        .all()
    )
