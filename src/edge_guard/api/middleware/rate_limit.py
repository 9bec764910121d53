"""
Rate limiting for request handlers.

Provides client identification from proxy headers and ``with_rate_limit``,
a wrapper that applies only the limiter to an endpoint. Endpoints that also
need validation should use ``create_handler`` which runs the limiter as one
of its stages.

Example:
    async def ping(request: Request) -> Response:
        return json_response({"ok": True})

    app.add_route("/ping", with_rate_limit(ping, "read"), methods=["GET", "OPTIONS"])
"""

import logging
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response

from edge_guard.api.middleware.cors import CorsPolicy
from edge_guard.api.responses import rate_limit_response
from edge_guard.ratelimit.limiter import RateLimiter, get_rate_limiter
from edge_guard.ratelimit.models import RateLimitConfig, RateLimitResult

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks, in order, the first X-Forwarded-For entry, X-Real-IP and
    CF-Connecting-IP. The socket peer address is not used: behind the
    hosting platform's proxy it is always the proxy.

    Args:
        request: Incoming request

    Returns:
        Client IP address, or "unknown"
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    cf_connecting_ip = request.headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    return "unknown"


def rate_limit_by_user(
    request: Request,
    user_id: str,
    config: RateLimitConfig | str = "api",
    limiter: RateLimiter | None = None,
) -> RateLimitResult:
    """Count a request against an authenticated user's budget for this path."""
    limiter = limiter or get_rate_limiter()
    return limiter.check(f"user:{user_id}", config, request.url.path)


def with_rate_limit(
    handler: Endpoint,
    config: RateLimitConfig | str = "api",
    *,
    get_identifier: Callable[[Request], str] | None = None,
    get_endpoint: Callable[[Request], str] | None = None,
    cors: CorsPolicy | None = None,
    skip_methods: Iterable[str] = ("OPTIONS",),
    limiter: RateLimiter | None = None,
) -> Endpoint:
    """
    Wrap an endpoint with a rate limit check.

    Args:
        handler: Endpoint to protect
        config: Tier config or preset name
        get_identifier: Client identity extractor (client IP by default)
        get_endpoint: Endpoint key extractor (request path by default)
        cors: CORS policy for the 429 response
        skip_methods: Methods passed straight through without counting
        limiter: Limiter instance (process-wide limiter by default)

    Returns:
        Endpoint that returns 429 when the limit is exhausted and otherwise
        copies the rate limit headers onto the handler's response
    """
    skip = {method.upper() for method in skip_methods}
    identify = get_identifier or get_client_ip

    def resolve_endpoint(request: Request) -> str:
        return get_endpoint(request) if get_endpoint else request.url.path

    async def rate_limited(request: Request) -> Response:
        if request.method.upper() in skip:
            return await handler(request)

        active = limiter or get_rate_limiter()
        active.start_cleanup()

        identifier = identify(request)
        endpoint = resolve_endpoint(request)
        result = active.check(identifier, config, endpoint)

        if not result.allowed:
            logger.info(
                f"Rate limit exceeded for {identifier} on {endpoint}",
                extra={
                    "event": "rate_limit_exceeded",
                    "client_ip": identifier,
                    "path": endpoint,
                    "retry_after": result.retry_after,
                },
            )
            policy = cors or CorsPolicy.from_settings()
            return rate_limit_response(result, policy.headers(request.headers.get("origin")))

        response = await handler(request)
        for key, value in result.headers.items():
            response.headers[key] = value
        return response

    return rate_limited
