"""
Rate limit data model and presets.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RateLimitConfig:
    """
    Quota for one rate limit tier.

    Attributes:
        window_ms: Window length in milliseconds
        max_requests: Requests allowed per window before burst is used
        burst_allowance: Extra requests allowed once max_requests is spent
        key_prefix: Namespace for store keys of this tier
    """

    window_ms: int
    max_requests: int
    burst_allowance: int = 0
    key_prefix: str = "default"

    @property
    def effective_limit(self) -> int:
        return self.max_requests + max(0, self.burst_allowance)

    @property
    def is_degenerate(self) -> bool:
        """True when the config can never admit a request."""
        return self.window_ms <= 0 or self.effective_limit <= 0

    def to_dict(self) -> dict[str, int | str]:
        return {
            "window_ms": self.window_ms,
            "max_requests": self.max_requests,
            "burst_allowance": self.burst_allowance,
            "key_prefix": self.key_prefix,
        }


RATE_LIMIT_PRESETS: dict[str, RateLimitConfig] = {
    # Login and other credential endpoints
    "auth": RateLimitConfig(window_ms=15 * 60 * 1000, max_requests=5, burst_allowance=0, key_prefix="auth"),
    "api": RateLimitConfig(window_ms=60 * 1000, max_requests=60, burst_allowance=10, key_prefix="api"),
    "read": RateLimitConfig(window_ms=60 * 1000, max_requests=120, burst_allowance=20, key_prefix="read"),
    "write": RateLimitConfig(window_ms=60 * 1000, max_requests=30, burst_allowance=5, key_prefix="write"),
    # AI generation and other costly calls
    "expensive": RateLimitConfig(window_ms=60 * 1000, max_requests=5, burst_allowance=2, key_prefix="expensive"),
    "health": RateLimitConfig(window_ms=60 * 1000, max_requests=1000, burst_allowance=100, key_prefix="health"),
}


def resolve_config(config: "RateLimitConfig | str | None") -> RateLimitConfig | None:
    """
    Resolve a preset name to its config.

    Unknown preset names resolve to None, which the limiter treats as deny-all.
    """
    if config is None or isinstance(config, RateLimitConfig):
        return config
    return RATE_LIMIT_PRESETS.get(config)


@dataclass
class RateLimitEntry:
    """Mutable counter state for one key."""

    count: int
    window_start: float
    burst_used: int = 0


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
