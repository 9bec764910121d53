"""
Rate limiting for edge-guard.
"""

from edge_guard.ratelimit.limiter import (
    CLEANUP_INTERVAL_SECONDS,
    RateLimiter,
    build_headers,
    check_rate_limit,
    combined_rate_limit,
    generate_key,
    get_rate_limiter,
    set_rate_limiter,
)
from edge_guard.ratelimit.models import (
    RATE_LIMIT_PRESETS,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    resolve_config,
)
from edge_guard.ratelimit.store import InMemoryRateLimitStore, RateLimitStore

__all__ = [
    "CLEANUP_INTERVAL_SECONDS",
    "RateLimiter",
    "build_headers",
    "check_rate_limit",
    "combined_rate_limit",
    "generate_key",
    "get_rate_limiter",
    "set_rate_limiter",
    "RATE_LIMIT_PRESETS",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitResult",
    "resolve_config",
    "InMemoryRateLimitStore",
    "RateLimitStore",
]
