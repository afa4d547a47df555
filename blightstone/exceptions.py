"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to. Handlers in ``blightstone.main``
render them as ``{"success": false, "error": <message>}``.
"""

from uuid import UUID


class BlightstoneError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        self.message = message or self.default_message
        # Raw store/provider message, only exposed in development
        self.detail = detail
        super().__init__(self.message)


class ValidationError(BlightstoneError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(BlightstoneError):
    status_code = 401
    default_message = "Authentication required"


class InvalidSessionError(AuthenticationError):
    default_message = "Invalid session"


class ProfileNotFoundError(AuthenticationError):
    default_message = "User profile not found"


class PermissionDeniedError(BlightstoneError):
    status_code = 403
    default_message = "Insufficient permissions"


class DuplicateError(BlightstoneError):
    status_code = 400
    default_message = "Record already exists"


class NotFoundError(BlightstoneError):
    """Unknown or unusable token. Uses 400 so callers cannot tell the cases apart."""

    status_code = 400
    default_message = "Invalid or expired invitation"


class RecordNotFoundError(BlightstoneError):
    status_code = 404
    default_message = "Not found"


class DependencyError(BlightstoneError):
    """A backing store or provider failed or timed out. Safe to retry."""

    status_code = 500
    default_message = "Service temporarily unavailable"


class NotificationError(DependencyError):
    default_message = "Failed to send email"


class InconsistentStateError(BlightstoneError):
    """A compensating action failed and left records that need manual cleanup."""

    status_code = 500
    default_message = "Inconsistent state requiring manual cleanup"

    def __init__(self, resource: str, resource_id: UUID | str, *, detail: str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            f"{self.default_message} ({resource} {resource_id})",
            detail=detail,
        )
