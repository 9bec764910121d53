"""
API schemas: error taxonomy and response models.
"""

from edge_guard.api.schemas.exceptions import (
    APIException,
    AuthRequiredError,
    ForbiddenError,
    InternalError,
    InvalidPayloadError,
    MethodNotAllowedError,
    PayloadTooLargeError,
    RateLimitExceededError,
    ValidationError,
)
from edge_guard.api.schemas.responses import (
    ContactSubmissionResponse,
    ErrorResponse,
    HealthResponse,
    RateLimitClearResponse,
    RateLimitStatsResponse,
    WebhookAckResponse,
)

__all__ = [
    "APIException",
    "AuthRequiredError",
    "ForbiddenError",
    "InternalError",
    "InvalidPayloadError",
    "MethodNotAllowedError",
    "PayloadTooLargeError",
    "RateLimitExceededError",
    "ValidationError",
    "ContactSubmissionResponse",
    "ErrorResponse",
    "HealthResponse",
    "RateLimitClearResponse",
    "RateLimitStatsResponse",
    "WebhookAckResponse",
]
