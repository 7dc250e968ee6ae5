"""
Platform-wide exception hierarchy.

Every service raises one of these types. The app factory registers a single
handler per type so that blueprints get consistent HTTP status codes:

    NotFoundError          → 404
    DeletedEntityError     → 400
    AccessDeniedError      → 403
    ValidationError        → 400
    ConflictError          → 409
    DownstreamError        → 502

Usage:
    from projecthub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Risk", risk_id)
    raise ValidationError("Work Package has unchecked deliverables")
"""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Team").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" with id {resource_id}"
        msg += " not found!"
        super().__init__(msg)


class DeletedEntityError(Exception):
    """Raised when an entity exists but has been soft-deleted.

    Deleted entities are terminal: no further edits or deletes are accepted,
    regardless of who asks. Distinct from AccessDeniedError so that callers
    can tell "gone" apart from "not allowed".
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" with id {resource_id}"
        msg += " has been deleted already!"
        super().__init__(msg)


class AccessDeniedError(Exception):
    """Raised when the acting user's role or relationship is insufficient."""

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        msg = "Access Denied"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AccessDeniedAdminOnlyError(AccessDeniedError):
    """Raised for operations reserved to admins."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Only admins can {action}")


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would violate a unique constraint."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class DownstreamError(Exception):
    """Raised when an external collaborator (storage, messaging) fails.

    Never rolls back a persistence write that has already been committed.
    """

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service} failed: {message}")
