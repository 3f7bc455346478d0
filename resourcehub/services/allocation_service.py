"""
Resource allocation service: write-time capacity enforcement and the batch
conflict report.

Two readers of the same overlap rule:

    check_overlap / _enforce_capacity   every create and update
    conflict_report                     read-only scan of live allocations

Write path:
    1. Lock the resource row (SELECT ... FOR UPDATE).
    2. Sum overlapping allocations of that resource (excluding the row being
       updated) plus the requested percentage.
    3. Reject with CapacityExceededError when the total exceeds the
       resource's capacity, else write and commit in the same transaction.

Concurrent writers on one resource therefore serialize on the lock; two
requests can no longer both pass the check and jointly over-commit.
"""

from __future__ import annotations

import logging
from collections import namedtuple
from datetime import date

from resourcehub.core.exceptions import CapacityExceededError, NotFoundError, ValidationError
from resourcehub.models import db
from resourcehub.models.project import Project, Sprint
from resourcehub.models.resource import Resource, ResourceAllocation
from resourcehub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

OverlapCheck = namedtuple("OverlapCheck", ["total_allocated", "capacity", "over_committed"])


def ranges_overlap(s1: date, e1: date, s2: date, e2: date) -> bool:
    """Inclusive date ranges overlap when each starts on or before the other ends."""
    return s1 <= e2 and s2 <= e1


# ── Overlap check ────────────────────────────────────────────────────────────


def _overlapping(resource_id, start, end, exclude_allocation_id=None) -> list[ResourceAllocation]:
    """Allocations of ``resource_id`` whose range meets [start, end] under ``ranges_overlap``."""
    q = db.select(ResourceAllocation).where(ResourceAllocation.resource_id == resource_id)
    if exclude_allocation_id is not None:
        q = q.where(ResourceAllocation.id != exclude_allocation_id)
    return [
        a for a in db.session.execute(q).scalars()
        if ranges_overlap(a.start_date, a.end_date, start, end)
    ]


def check_overlap(resource_id, start, end, percentage, exclude_allocation_id=None) -> OverlapCheck:
    """Total load of ``resource_id`` over [start, end] if ``percentage`` were added.

    Raises:
        NotFoundError: resource does not exist.
    """
    resource = db.session.get(Resource, resource_id)
    if not resource:
        raise NotFoundError(resource="Resource", resource_id=resource_id)
    return _measure(resource, start, end, percentage, exclude_allocation_id)


def _measure(resource, start, end, percentage, exclude_allocation_id=None) -> OverlapCheck:
    overlapping = _overlapping(resource.id, start, end, exclude_allocation_id)
    total = sum(a.allocation_percentage for a in overlapping) + percentage
    capacity = resource.capacity
    return OverlapCheck(total, capacity, total > capacity)


def _enforce_capacity(resource_id, start, end, percentage, exclude_allocation_id=None) -> Resource:
    """Lock the resource row and raise CapacityExceededError on over-commit.

    Must run inside the transaction that performs the write; the lock is
    released by the caller's commit or rollback.
    """
    resource = db.session.execute(
        db.select(Resource).where(Resource.id == resource_id).with_for_update()
    ).scalar_one_or_none()
    if not resource:
        raise NotFoundError(resource="Resource", resource_id=resource_id)

    result = _measure(resource, start, end, percentage, exclude_allocation_id)
    if result.over_committed:
        db.session.rollback()
        logger.info(
            "Allocation rejected resource_id=%s total=%s capacity=%s",
            resource_id, result.total_allocated, result.capacity,
        )
        raise CapacityExceededError(result.total_allocated, result.capacity)
    return resource


# ── Validation ───────────────────────────────────────────────────────────────


def _parse_percentage(value, errors):
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        errors["allocation_percentage"] = "allocation_percentage must be a whole number"
        return None
    pct = value
    if not 0 <= pct <= 100:
        errors["allocation_percentage"] = "allocation_percentage must be between 0 and 100"
        return None
    return pct


def _check_dates(start, end, errors):
    if start and end and end < start:
        errors["end_date"] = "End date must be on or after start date"


def _validate_sprint(sprint_id, project_id, errors):
    if sprint_id is None:
        return
    sprint = db.session.get(Sprint, sprint_id)
    if not sprint or sprint.project_id != project_id:
        errors["sprint_id"] = "sprint_id must reference a sprint of the allocated project"


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_allocation(data: dict) -> ResourceAllocation:
    """
    Allocate a share of a resource to a project.

    Raises:
        ValidationError:       missing or malformed fields.
        NotFoundError:         resource or project does not exist.
        CapacityExceededError: the resource would exceed its capacity.
    """
    required = ("resource_id", "project_id", "allocation_percentage", "start_date", "end_date")
    missing = [f for f in required if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"{', '.join(required)} are required",
            details={f: f"{f} is required" for f in missing},
        )

    errors: dict[str, str] = {}
    pct = _parse_percentage(data["allocation_percentage"], errors)
    start = parse_date(data["start_date"])
    end = parse_date(data["end_date"])
    if start is None:
        errors["start_date"] = "Invalid date. Use YYYY-MM-DD"
    if end is None:
        errors["end_date"] = "Invalid date. Use YYYY-MM-DD"
    _check_dates(start, end, errors)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    resource_id = data["resource_id"]
    project_id = data["project_id"]
    if not db.session.get(Project, project_id):
        raise NotFoundError(resource="Project", resource_id=project_id)
    sprint_id = data.get("sprint_id")
    _validate_sprint(sprint_id, project_id, errors)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _enforce_capacity(resource_id, start, end, pct)

    alloc = ResourceAllocation(
        resource_id=resource_id,
        project_id=project_id,
        sprint_id=sprint_id,
        allocation_percentage=pct,
        start_date=start,
        end_date=end,
    )
    db.session.add(alloc)
    db.session.commit()
    logger.info("Allocation created id=%s resource_id=%s project_id=%s pct=%s %s..%s",
                alloc.id, resource_id, project_id, pct, start, end)
    return alloc


def update_allocation(allocation_id: int, data: dict) -> ResourceAllocation:
    """Update percentage, dates or sprint; omitted fields keep their stored values."""
    alloc = db.session.get(ResourceAllocation, allocation_id)
    if not alloc:
        raise NotFoundError(resource="Allocation", resource_id=allocation_id)

    errors: dict[str, str] = {}
    pct = alloc.allocation_percentage
    if data.get("allocation_percentage") is not None:
        pct = _parse_percentage(data["allocation_percentage"], errors)
    start = alloc.start_date
    if data.get("start_date"):
        start = parse_date(data["start_date"])
        if start is None:
            errors["start_date"] = "Invalid date. Use YYYY-MM-DD"
    end = alloc.end_date
    if data.get("end_date"):
        end = parse_date(data["end_date"])
        if end is None:
            errors["end_date"] = "Invalid date. Use YYYY-MM-DD"
    _check_dates(start, end, errors)
    if "sprint_id" in data:
        _validate_sprint(data["sprint_id"], alloc.project_id, errors)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _enforce_capacity(alloc.resource_id, start, end, pct, exclude_allocation_id=alloc.id)

    alloc.allocation_percentage = pct
    alloc.start_date = start
    alloc.end_date = end
    if "sprint_id" in data:
        alloc.sprint_id = data["sprint_id"]
    db.session.commit()
    logger.info("Allocation updated id=%s pct=%s %s..%s", alloc.id, pct, start, end)
    return alloc


def delete_allocation(allocation_id: int) -> None:
    alloc = db.session.get(ResourceAllocation, allocation_id)
    if not alloc:
        raise NotFoundError(resource="Allocation", resource_id=allocation_id)
    db.session.delete(alloc)
    db.session.commit()
    logger.info("Allocation deleted id=%s", allocation_id)


def list_allocations(resource_id=None, project_id=None) -> list[ResourceAllocation]:
    """Allocations, newest start first, optionally filtered by resource or project."""
    q = db.select(ResourceAllocation)
    if resource_id is not None:
        q = q.where(ResourceAllocation.resource_id == resource_id)
    if project_id is not None:
        q = q.where(ResourceAllocation.project_id == project_id)
    q = q.order_by(ResourceAllocation.start_date.desc(), ResourceAllocation.id.desc())
    return list(db.session.execute(q).scalars().all())


# ── Batch report ─────────────────────────────────────────────────────────────


def conflict_report(today: date | None = None) -> list[dict]:
    """Over-committed groups of live allocations, per resource.

    Live means ``end_date >= today``. Allocations are grouped by their exact
    (start_date, end_date) pair; partially overlapping ranges land in
    different groups and are not summed together.
    """
    today = today or date.today()
    conflicts = []
    resources = db.session.execute(db.select(Resource).order_by(Resource.id)).scalars().all()
    for resource in resources:
        allocations = db.session.execute(
            db.select(ResourceAllocation)
            .where(
                ResourceAllocation.resource_id == resource.id,
                ResourceAllocation.end_date >= today,
            )
            .order_by(ResourceAllocation.start_date, ResourceAllocation.id)
        ).scalars().all()
        if not allocations:
            continue

        grouped: dict[tuple[date, date], list[ResourceAllocation]] = {}
        for alloc in allocations:
            grouped.setdefault((alloc.start_date, alloc.end_date), []).append(alloc)

        for allocs in grouped.values():
            total = sum(a.allocation_percentage for a in allocs)
            if total > resource.capacity:
                conflicts.append({
                    "resource_id": resource.id,
                    "resource_name": resource.name,
                    "total_allocated": total,
                    "capacity": resource.capacity,
                    "allocations": [
                        {
                            "project_name": a.project.name if a.project else None,
                            "allocation_percentage": a.allocation_percentage,
                            "start_date": a.start_date.isoformat(),
                            "end_date": a.end_date.isoformat(),
                        }
                        for a in allocs
                    ],
                })
    return conflicts
