"""
Domain errors raised by the service layer.

Each carries the HTTP status the API reports it with and a short error code.
"""
from typing import Optional


class DiyGenieError(Exception):
    """Base exception for service-layer errors."""
    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, detail: str, *, error: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error:
            self.error = error


class ValidationFailed(DiyGenieError):
    """Caller supplied malformed or missing input."""
    status_code = 400
    error = "validation_failed"


class PermissionDenied(DiyGenieError):
    """Quota exhausted or tier does not allow the action."""
    status_code = 403
    error = "permission_denied"


class NotFound(DiyGenieError):
    """Unknown project, scan or user."""
    status_code = 404
    error = "not_found"


class Conflict(DiyGenieError):
    """Illegal state transition or an operation already in flight."""
    status_code = 409
    error = "conflict"


class StorageFailure(DiyGenieError):
    """Persistence layer unreachable or failed."""
    status_code = 500
    error = "storage_failure"


class ServiceUnavailable(DiyGenieError):
    """A required collaborator (e.g. the payment processor) is not configured or unreachable."""
    status_code = 503
    error = "service_unavailable"
