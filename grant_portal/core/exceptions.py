"""Custom exception classes for the grant portal."""

from typing import Any, Optional

from fastapi import status


class PortalError(Exception):
    """Base exception for the grant portal.

    ``code`` is the machine-readable error key returned to clients in the
    ``{"error", "message", "details"}`` payload.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_request"

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthenticationError(PortalError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class AuthorizationError(PortalError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class ResourceNotFoundError(PortalError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ResourceConflictError(PortalError):
    """Raised when a resource already exists or clashes with another."""
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ValidationError(PortalError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class DependencyConflictError(ResourceConflictError):
    """Raised when a record cannot be removed because others reference it."""
    code = "has_dependencies"


class EligibilityCheckError(PortalError):
    """Raised when the deletion-eligibility queries fail."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "eligibility_check_failed"
