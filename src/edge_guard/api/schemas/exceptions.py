"""
Exception classes for API error handling.

Every failure the handler wrapper reports maps to one of these classes and
is rendered with the same body shape: ``{"error": ..., "details": ...}``.
"""

from datetime import datetime, timezone
from typing import Any

from edge_guard.ratelimit.models import RateLimitResult


class APIException(Exception):
    """
    Base exception for API errors.

    Handlers may raise any subclass; the wrapper turns it into a response
    with ``status_code`` and the uniform error body.
    """

    status_code: int = 500
    error_type: str = "api_error"
    message: str = "An error occurred"
    detail: str | list[str] | None = None

    def __init__(
        self,
        message: str | None = None,
        detail: str | list[str] | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message or self.message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        """Render the uniform error body."""
        body: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["details"] = self.detail
        return body

    def headers(self) -> dict[str, str]:
        """Extra response headers for this error."""
        return {}


class ValidationError(APIException):
    """Exception raised when request validation fails."""

    status_code = 400
    error_type = "validation_error"
    message = "Validation failed"


class InvalidPayloadError(ValidationError):
    """Exception raised when the request body cannot be parsed."""

    error_type = "invalid_payload"
    message = "Invalid JSON in request body"


class PayloadTooLargeError(APIException):
    """Exception raised when a request body exceeds the configured size."""

    status_code = 413
    error_type = "payload_too_large"
    message = "Payload too large"


class AuthRequiredError(APIException):
    """Exception raised when authentication is required but missing."""

    status_code = 401
    error_type = "authentication_required"
    message = "Authentication required"


class ForbiddenError(APIException):
    """Exception raised when the caller may not perform the request."""

    status_code = 403
    error_type = "forbidden"
    message = "Forbidden"


class MethodNotAllowedError(APIException):
    """Exception raised for HTTP methods outside the allow-list."""

    status_code = 405
    error_type = "method_not_allowed"

    def __init__(self, method: str, allowed: list[str] | None = None) -> None:
        self.method = method
        self.allowed = allowed or []
        super().__init__(message=f"Method {method} not allowed")

    def headers(self) -> dict[str, str]:
        if not self.allowed:
            return {}
        return {"Allow": ", ".join(self.allowed)}


class RateLimitExceededError(APIException):
    """Exception raised when a rate limit is exhausted."""

    status_code = 429
    error_type = "rate_limit_exceeded"
    message = "Too many requests"

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__(detail="Rate limit exceeded. Please try again later.")

    def to_body(self) -> dict[str, Any]:
        reset_at = datetime.fromtimestamp(self.result.reset_at / 1000, tz=timezone.utc)
        return {
            "error": self.message,
            "message": self.detail,
            "retryAfter": self.result.retry_after,
            "resetAt": reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }

    def headers(self) -> dict[str, str]:
        return dict(self.result.headers)


class InternalError(APIException):
    """Exception raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"
    message = "Internal server error"
