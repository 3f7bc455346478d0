"""
Domain exceptions raised by the service layer.

``utils.errors.register_error_handlers`` turns each type into a JSON error
body with a fixed status code, so blueprints only need to let them
propagate.

    raise NotFoundError("Sprint", 42)
    raise ValidationError("Validation failed", details={"team_collaboration": "..."})
    raise CapacityExceededError(total_allocated=110.0, capacity=100.0)
"""


class NotFoundError(Exception):
    """A looked-up record does not exist (404)."""

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        label = resource if resource_id is None else f"{resource} id={resource_id}"
        super().__init__(f"{label} not found")


class ValidationError(Exception):
    """Input rejected before anything is computed or stored (400).

    ``details`` maps field name to what is wrong with it.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """A write collides with an existing record (409).

    ``field`` names the unique key or rule that was hit and is echoed to
    the client.
    """

    def __init__(self, resource: str, field: str, value=None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class CapacityExceededError(Exception):
    """An allocation would take a resource past its capacity (400).

    Totals are percentages and are returned to the client unchanged.
    """

    def __init__(self, total_allocated: float, capacity: float) -> None:
        self.total_allocated = total_allocated
        self.capacity = capacity
        super().__init__(
            f"Over-allocation detected. Resource would be allocated "
            f"{total_allocated}% (capacity {capacity}%)"
        )


class AuthorizationError(Exception):
    """No valid caller (status 401) or the caller's role is not allowed (403)."""

    def __init__(self, message: str = "Forbidden", status: int = 403) -> None:
        self.status = status
        super().__init__(message)
