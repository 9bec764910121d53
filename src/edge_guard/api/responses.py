"""
Response helpers shared by wrapped handlers.
"""

from typing import Any, Mapping

from fastapi.responses import JSONResponse

from edge_guard.api.schemas.exceptions import APIException, RateLimitExceededError
from edge_guard.ratelimit.models import RateLimitResult


def json_response(data: Any, status: int = 200, headers: Mapping[str, str] | None = None) -> JSONResponse:
    """Create a JSON success response."""
    return JSONResponse(content=data, status_code=status, headers=dict(headers or {}))


def error_response(
    message: str,
    status: int = 400,
    details: str | list[str] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Create a response with the uniform error body."""
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(content=body, status_code=status, headers=dict(headers or {}))


def validation_error_response(
    errors: str | list[str],
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Create a 400 response listing validation errors."""
    error_list = errors if isinstance(errors, list) else [errors]
    return error_response("Validation failed", 400, details=error_list, headers=headers)


def exception_response(exc: APIException, headers: Mapping[str, str] | None = None) -> JSONResponse:
    """Render an APIException, merging its own headers over ``headers``."""
    merged = dict(headers or {})
    merged.update(exc.headers())
    return JSONResponse(content=exc.to_body(), status_code=exc.status_code, headers=merged)


def rate_limit_response(result: RateLimitResult, cors_headers: Mapping[str, str] | None = None) -> JSONResponse:
    """Create the 429 response for a denied rate limit check."""
    return exception_response(RateLimitExceededError(result), cors_headers)
