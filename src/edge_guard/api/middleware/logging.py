"""
Request logging middleware.

Emits one access record per request, tagged with what the guard layer
decided: the outcome class of the response and, when the endpoint is rate
limited, the quota left for the caller.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from edge_guard.api.middleware.rate_limit import get_client_ip

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Status code -> outcome recorded on the access log
OUTCOMES: dict[int, str] = {
    400: "invalid",
    401: "unauthenticated",
    403: "forbidden",
    405: "method_not_allowed",
    413: "too_large",
    429: "rate_limited",
}


def classify_outcome(status_code: int) -> str:
    """Map a response status to the guard outcome it represents."""
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return OUTCOMES.get(status_code, "rejected")
    return "allowed"


def rate_limit_fields(response: Response) -> dict[str, int]:
    """Pull the quota numbers the handler wrapper put on the response."""
    fields: dict[str, int] = {}
    for header, key in (
        ("x-ratelimit-limit", "rate_limit"),
        ("x-ratelimit-remaining", "rate_limit_remaining"),
        ("x-ratelimit-burst-remaining", "rate_limit_burst_remaining"),
        ("retry-after", "retry_after"),
    ):
        value = response.headers.get(header)
        if value is not None and value.isdigit():
            fields[key] = int(value)
    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access log for guarded endpoints.

    Rejections (4xx) are logged at WARNING, 5xx and unhandled exceptions at
    ERROR. The request id from ``X-Request-ID`` is reused or generated, and
    echoed on the response together with ``X-Process-Time`` in milliseconds.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        logger_instance: logging.Logger | None = None,
        skip_paths: set[str] | None = None,
    ) -> None:
        """
        Args:
            app: ASGI application
            logger_instance: Custom logger instance
            skip_paths: Paths that are served without an access record
        """
        super().__init__(app)
        self._logger = logger_instance or logger
        self._skip_paths = set(skip_paths if skip_paths is not None else {"/health"})

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self._skip_paths:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        record = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": get_client_ip(request),
            "request_id": request_id,
        }
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self._logger.error(
                f"{record['method']} {record['path']} failed: {e}",
                extra={
                    **record,
                    "event": "request_failed",
                    "outcome": "error",
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
                exc_info=True,
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        outcome = classify_outcome(response.status_code)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        self._logger.log(
            level,
            f"{record['method']} {record['path']} -> {response.status_code} ({outcome})",
            extra={
                **record,
                "event": "request_completed",
                "status_code": response.status_code,
                "outcome": outcome,
                "duration_ms": duration_ms,
                **rate_limit_fields(response),
            },
        )

        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
