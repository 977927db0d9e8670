"""
Service-layer exception hierarchy.

Services raise these; blueprints translate them into JSON error responses
with a consistent HTTP status.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Scenario", resource_id=42)
    raise ValidationError("comment is required", details={"comment": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist within the given school.

    Args:
        resource: Human-readable entity name (e.g. "School", "Scenario").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    status = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    status = 422

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when the record is not in a state that allows the operation.

    Maps to HTTP 409.
    """

    status = 409

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ListParamError(ValueError):
    """Invalid list/query parameters (limit, offset, fields, order).

    Always carries ``status = 400``; the HTTP layer returns the message as-is.
    """

    def __init__(self, message: str, status: int = 400) -> None:
        self.status = status
        self.message = message
        super().__init__(message)
