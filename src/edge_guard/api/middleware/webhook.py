"""
HMAC signature verification for incoming webhooks.

Senders sign the raw request body with a shared secret using HMAC-SHA256
and send the hex digest in ``X-Webhook-Signature`` (``X-Hub-Signature-256``
and ``X-Signature`` are also read; a ``sha256=`` prefix is accepted). When
a ``X-Webhook-Timestamp`` (or ``X-Timestamp``) header is present, the
signed message is ``<timestamp>.<body>`` and the timestamp must be at most
five minutes old and at most one minute in the future.

Usage with the handler wrapper:

    create_handler(handle_event, before_validation=webhook_hook(secret))
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request, Response

from edge_guard.api.middleware.cors import CorsPolicy
from edge_guard.api.middleware.validation import BodyTooLargeError, read_body
from edge_guard.api.responses import exception_response
from edge_guard.api.schemas.exceptions import AuthRequiredError, PayloadTooLargeError
from edge_guard.config import get_settings
from edge_guard.validation.models import ValidationContext

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-webhook-signature", "x-hub-signature-256", "x-signature")
TIMESTAMP_HEADERS = ("x-webhook-timestamp", "x-timestamp")
SIGNATURE_PREFIX = "sha256="

# 5 minutes
DEFAULT_MAX_AGE_SECONDS = 300

MAX_FUTURE_SKEW_SECONDS = 60


@dataclass(frozen=True)
class WebhookCheck:
    """Outcome of a signature check."""

    valid: bool
    error: str | None = None


def _as_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def generate_signature(payload: str | bytes, secret: str, timestamp: str | int | None = None) -> str:
    """
    Compute the hex HMAC-SHA256 signature a sender would attach.

    Args:
        payload: Raw request body
        secret: Shared webhook secret
        timestamp: Unix seconds, prefixed to the payload when given

    Returns:
        Lower-case hex digest
    """
    message = _as_bytes(payload)
    if timestamp is not None:
        message = f"{timestamp}.".encode("utf-8") + message
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    payload: str | bytes,
    signature: str | None,
    secret: str,
    timestamp: str | None = None,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> WebhookCheck:
    """
    Verify a webhook signature, and its timestamp when one was sent.

    Args:
        payload: Raw request body
        signature: Signature header value, with or without ``sha256=``
        secret: Shared webhook secret
        timestamp: Timestamp header value in unix seconds
        max_age_seconds: Oldest timestamp accepted
        now: Current unix time in seconds (defaults to wall clock)

    Returns:
        WebhookCheck with the failure reason when invalid
    """
    if not signature:
        return WebhookCheck(valid=False, error="Missing webhook signature")

    if timestamp:
        try:
            sent_at = int(timestamp.strip())
        except ValueError:
            return WebhookCheck(valid=False, error="Invalid timestamp format")

        age = (time.time() if now is None else now) - sent_at
        if age > max_age_seconds:
            return WebhookCheck(valid=False, error="Webhook timestamp too old")
        if age < -MAX_FUTURE_SKEW_SECONDS:
            return WebhookCheck(valid=False, error="Webhook timestamp in the future")

    expected = generate_signature(payload, secret, timestamp.strip() if timestamp else None)

    provided = signature.strip()
    if provided.lower().startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX):]

    if not hmac.compare_digest(_as_bytes(provided.lower()), _as_bytes(expected)):
        return WebhookCheck(valid=False, error="Invalid webhook signature")

    return WebhookCheck(valid=True)


def verify_secret(provided: str | None, expected: str) -> bool:
    """Constant-time comparison for webhooks that send the shared secret itself."""
    if not provided:
        return False
    return hmac.compare_digest(_as_bytes(provided), _as_bytes(expected))


def _first_header(request: Request, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = request.headers.get(name)
        if value:
            return value
    return None


async def verify_webhook_request(
    request: Request,
    secret: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    max_body_size: int | None = None,
) -> WebhookCheck:
    """
    Verify the signature headers of a request against its body.

    Raises:
        BodyTooLargeError: If the body exceeds ``max_body_size``
    """
    body = await read_body(request, max_body_size)
    return verify_webhook_signature(
        body,
        _first_header(request, SIGNATURE_HEADERS),
        secret,
        _first_header(request, TIMESTAMP_HEADERS),
        max_age_seconds,
    )


def webhook_hook(
    secret: str | None = None,
    *,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    cors: CorsPolicy | None = None,
) -> Callable[[Request, ValidationContext], Awaitable[Response | None]]:
    """
    Build a ``before_validation`` hook enforcing webhook signatures.

    Args:
        secret: Shared secret (defaults to EG_WEBHOOK_SECRET)
        max_age_seconds: Oldest timestamp accepted
        cors: CORS policy used for the rejection headers

    Returns:
        Hook returning a 401 response on a bad signature and None otherwise

    Raises:
        ValueError: If no secret is given or configured
    """
    secret = secret or get_settings().webhook_secret
    if not secret:
        raise ValueError("Webhook secret is not configured (set EG_WEBHOOK_SECRET)")

    async def check_signature(request: Request, context: ValidationContext) -> Response | None:
        policy = cors or CorsPolicy.from_settings()
        cors_headers = policy.headers(request.headers.get("origin"))

        try:
            result = await verify_webhook_request(
                request,
                secret,
                max_age_seconds,
                get_settings().max_body_size,
            )
        except BodyTooLargeError as e:
            return exception_response(PayloadTooLargeError(detail=e.detail), cors_headers)

        if result.valid:
            return None

        logger.warning(
            f"Webhook verification failed: {result.error}",
            extra={
                "event": "webhook_rejected",
                "method": context.method,
                "path": context.path,
                "client_ip": context.identity,
                "reason": result.error,
            },
        )
        return exception_response(
            AuthRequiredError(message="Unauthorized", detail=result.error),
            cors_headers,
        )

    return check_signature
