"""
Hub-wide exception hierarchy.

Services raise these; ``create_app`` registers one handler per type so every
blueprint gets the same status codes and JSON body shape.

Usage:
    from hub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Ticket", resource_id=42)
    raise ValidationError("Ticket already claimed")
"""


class HubError(Exception):
    """Base class; ``status_code`` and ``code`` drive the HTTP mapping."""

    status_code = 400
    code = "ERR_VALIDATION_INVALID"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(HubError):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Ticket", "Department").
        resource_id: The key that was looked up. Logged, not returned.
    """

    status_code = 404
    code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ValidationError(HubError):
    """Malformed input or a violated business rule (duplicate, bad state).

    Maps to HTTP 400.
    """

    code = "ERR_VALIDATION_CONSTRAINT"


class ForbiddenError(HubError):
    """The principal lacks the capability for this action. Maps to HTTP 403."""

    status_code = 403
    code = "ERR_FORBIDDEN"

    def __init__(self, message: str = "Access denied", details: dict | None = None) -> None:
        super().__init__(message, details)


class UnauthenticatedError(HubError):
    status_code = 401
    code = "ERR_UNAUTHENTICATED"

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ConflictError(HubError):
    """A concurrent writer won a conditional update (e.g. ticket claim).

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The column whose precondition failed.
        value: Current value, included in logs only.
    """

    status_code = 409
    code = "ERR_CONFLICT_STATE"

    def __init__(self, resource: str, field: str, value=None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} {field} changed concurrently")
