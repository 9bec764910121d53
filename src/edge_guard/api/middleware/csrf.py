"""
CSRF protection for state-changing requests.

Two layers, both required for POST/PUT/PATCH/DELETE:

1. The Origin header must be allow-listed. When it is missing or not
   listed, the origin of the Referer URL is checked instead.
2. The ``X-CSRF-Token`` header must look like ``<timestamp>.<hash>`` where
   the timestamp is milliseconds since the epoch in base 36, no older than
   four hours and at most one minute in the future, and the hash has at
   least 20 characters.

Usage with the handler wrapper:

    create_handler(handle_delete, methods=["DELETE"], before_validation=csrf_hook())
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable
from urllib.parse import urlsplit

from fastapi import Request, Response

from edge_guard.api.middleware.cors import CorsPolicy, is_origin_allowed
from edge_guard.api.responses import exception_response
from edge_guard.api.schemas.exceptions import ForbiddenError
from edge_guard.validation.models import ValidationContext

logger = logging.getLogger(__name__)

CSRF_HEADER_NAME = "x-csrf-token"

# 4 hours
MAX_TOKEN_AGE_MS = 4 * 60 * 60 * 1000

# Clock skew tolerated for tokens minted "in the future"
MAX_FUTURE_SKEW_MS = 60 * 1000

MIN_HASH_LENGTH = 20

PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class CSRFCheck:
    """Outcome of a CSRF check. ``message`` is the client-facing reason."""

    valid: bool
    error: str | None = None
    message: str | None = None
    details: dict[str, str] = field(default_factory=dict)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_csrf_token(now_ms: int | None = None) -> str:
    """Mint a token in the format accepted by ``validate_csrf_token``."""
    timestamp = int(time.time() * 1000) if now_ms is None else int(now_ms)
    return f"{_to_base36(timestamp)}.{secrets.token_hex(16)}"


def _origin_of(url: str) -> str | None:
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def validate_origin(origin: str | None, allowed_origins: list[str] | tuple[str, ...]) -> str | None:
    """Return an error string, or None when the origin is allowed."""
    if not origin:
        return "Missing Origin header"
    if not is_origin_allowed(origin, allowed_origins):
        return f"Origin not allowed: {origin}"
    return None


def validate_referer(referer: str | None, allowed_origins: list[str] | tuple[str, ...]) -> str | None:
    """Check the origin part of a Referer URL against the allow-list."""
    if not referer:
        return "Missing Referer header"
    referer_origin = _origin_of(referer)
    if referer_origin is None:
        return "Invalid Referer header"
    return validate_origin(referer_origin, allowed_origins)


def validate_csrf_token(token: str | None, now_ms: float | None = None) -> str | None:
    """
    Check token format and age.

    Args:
        token: Raw header value
        now_ms: Current time in milliseconds (defaults to wall clock)

    Returns:
        Error string, or None when the token is acceptable
    """
    if not token:
        return "Missing CSRF token"

    parts = token.split(".")
    if len(parts) != 2:
        return "Invalid CSRF token format"
    timestamp_part, hash_part = parts

    try:
        timestamp = int(timestamp_part, 36)
    except ValueError:
        return "Invalid CSRF token timestamp"

    now = time.time() * 1000 if now_ms is None else now_ms
    age = now - timestamp
    if age > MAX_TOKEN_AGE_MS:
        return "CSRF token expired"
    if age < -MAX_FUTURE_SKEW_MS:
        return "CSRF token timestamp invalid"

    if len(hash_part) < MIN_HASH_LENGTH:
        return "Invalid CSRF token hash"

    return None


def validate_csrf(
    request: Request,
    allowed_origins: list[str] | tuple[str, ...],
    now_ms: float | None = None,
) -> CSRFCheck:
    """Run both CSRF layers for a request. Safe methods always pass."""
    method = request.method.upper()
    if method not in PROTECTED_METHODS:
        return CSRFCheck(valid=True)

    origin = request.headers.get("origin")
    origin_error = validate_origin(origin, allowed_origins)
    if origin_error:
        referer_error = validate_referer(request.headers.get("referer"), allowed_origins)
        if referer_error:
            return CSRFCheck(
                valid=False,
                error="Origin validation failed",
                message="Request origin not allowed",
                details={"origin": origin_error, "referer": referer_error},
            )

    token_error = validate_csrf_token(request.headers.get(CSRF_HEADER_NAME), now_ms)
    if token_error:
        return CSRFCheck(
            valid=False,
            error=token_error,
            message="Invalid or missing CSRF token",
        )

    return CSRFCheck(valid=True)


def csrf_hook(
    allowed_origins: list[str] | tuple[str, ...] | None = None,
    cors: CorsPolicy | None = None,
) -> Callable[[Request, ValidationContext], Awaitable[Response | None]]:
    """
    Build a ``before_validation`` hook enforcing CSRF protection.

    Args:
        allowed_origins: Origin allow-list (defaults to the CORS policy's)
        cors: CORS policy used for the 403 response headers

    Returns:
        Hook returning a 403 response on failure and None otherwise
    """

    async def check_csrf(request: Request, context: ValidationContext) -> Response | None:
        policy = cors or CorsPolicy.from_settings()
        origins = allowed_origins if allowed_origins is not None else policy.allowed_origins
        result = validate_csrf(request, origins)
        if result.valid:
            return None

        logger.warning(
            f"CSRF validation failed: {result.error}",
            extra={
                "event": "csrf_rejected",
                "method": context.method,
                "path": context.path,
                "client_ip": context.identity,
                "reason": result.error,
                **result.details,
            },
        )
        return exception_response(
            ForbiddenError(detail=result.message),
            policy.headers(request.headers.get("origin")),
        )

    return check_csrf
