"""
Fixed-window rate limiter with burst allowance.

Requests are counted per key from the start of the key's window. Once
``max_requests`` is spent, up to ``burst_allowance`` further requests are
admitted before the key is denied until the window ends. Counts are
approximate at window boundaries.

Keys have the form ``prefix:identifier[:endpoint]``.
"""

import logging
import math
import re
import threading
import time
from typing import Callable

from edge_guard.ratelimit.models import (
    RATE_LIMIT_PRESETS,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    resolve_config,
)
from edge_guard.ratelimit.store import InMemoryRateLimitStore, RateLimitStore

logger = logging.getLogger(__name__)

# Sweep every 5 minutes by default
CLEANUP_INTERVAL_SECONDS = 300.0

_ENDPOINT_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def _system_clock_ms() -> float:
    return time.time() * 1000


def generate_key(identifier: str, prefix: str | None = None, endpoint: str | None = None) -> str:
    """Build the composite store key for an identity, tier and endpoint."""
    parts = [prefix or "default", identifier]
    if endpoint:
        parts.append(_ENDPOINT_UNSAFE.sub("_", endpoint))
    return ":".join(parts)


def build_headers(
    config: RateLimitConfig,
    remaining: int,
    reset_at: float,
    burst_remaining: int,
    retry_after: int | None,
) -> dict[str, str]:
    """Standard X-RateLimit-* headers for a check result."""
    headers = {
        "X-RateLimit-Limit": str(max(0, config.max_requests)),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(math.ceil(reset_at / 1000)),
    }
    if config.burst_allowance > 0:
        headers["X-RateLimit-Burst-Remaining"] = str(max(0, burst_remaining))
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return headers


class RateLimiter:
    """
    Keyed fixed-window counter with burst allowance.

    The check-and-increment runs under a lock, so counts are exact within one
    process. The limiter never raises on a check: a missing, unknown or
    zero-valued config denies the request.
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        *,
        clock: Callable[[], float] | None = None,
        cleanup_interval: float = CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            store: Counter storage (in-memory by default)
            clock: Returns the current time in milliseconds
            cleanup_interval: Seconds between background sweeps
        """
        self.store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock or _system_clock_ms
        self._cleanup_interval = cleanup_interval
        self._lock = threading.Lock()
        self._max_window_ms = max(p.window_ms for p in RATE_LIMIT_PRESETS.values())

        self._cleanup_lock = threading.Lock()
        self._cleanup_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def now_ms(self) -> float:
        return self._clock()

    @property
    def max_window_ms(self) -> int:
        """Largest window seen so far; entries older than twice this are swept."""
        return self._max_window_ms

    def check(
        self,
        identifier: str,
        config: RateLimitConfig | str | None,
        endpoint: str | None = None,
    ) -> RateLimitResult:
        """
        Count one request for ``identifier`` and decide whether it is allowed.

        Args:
            identifier: Client identity (IP address, ``user:<id>``...)
            config: Tier config or preset name
            endpoint: Optional endpoint to scope the counter to

        Returns:
            RateLimitResult with headers ready to copy onto the response
        """
        now = self.now_ms()
        resolved = resolve_config(config)

        if resolved is None or resolved.is_degenerate:
            return self._deny_unconfigured(resolved, now)

        key = generate_key(identifier, resolved.key_prefix, endpoint)

        with self._lock:
            if resolved.window_ms > self._max_window_ms:
                self._max_window_ms = resolved.window_ms

            entry = self.store.get(key)
            if entry is None or now - entry.window_start >= resolved.window_ms:
                entry = RateLimitEntry(count=0, window_start=now, burst_used=0)

            burst_allowance = max(0, resolved.burst_allowance)
            allowed = entry.count < resolved.max_requests or entry.burst_used < burst_allowance

            if allowed:
                entry.count += 1
                # Normal quota is consumed before any burst
                if entry.count > resolved.max_requests:
                    entry.burst_used += 1

            self.store.set(key, entry)

            count = entry.count
            burst_used = entry.burst_used
            reset_at = entry.window_start + resolved.window_ms

        remaining = max(0, resolved.max_requests + burst_allowance - count)
        retry_after = None if allowed else max(1, math.ceil((reset_at - now) / 1000))

        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_at=reset_at,
            retry_after=retry_after,
            headers=build_headers(
                resolved, remaining, reset_at, burst_allowance - burst_used, retry_after
            ),
        )

    def _deny_unconfigured(self, config: RateLimitConfig | None, now: float) -> RateLimitResult:
        window_ms = max(0, config.window_ms) if config is not None else 0
        reset_at = now + window_ms
        retry_after = max(1, math.ceil(window_ms / 1000))
        logger.warning(
            "Rate limit config missing or empty, denying request",
            extra={"event": "rate_limit_unconfigured", "config": config.to_dict() if config else None},
        )
        headers = {
            "X-RateLimit-Limit": str(max(0, config.max_requests)) if config else "0",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(math.ceil(reset_at / 1000)),
            "Retry-After": str(retry_after),
        }
        return RateLimitResult(
            allowed=False,
            remaining=0,
            reset_at=reset_at,
            retry_after=retry_after,
            headers=headers,
        )

    def combined(
        self,
        ip: str,
        user_id: str | None,
        ip_config: RateLimitConfig | str | None = "api",
        user_config: RateLimitConfig | str | None = "api",
        endpoint: str | None = None,
    ) -> RateLimitResult:
        """
        Check the IP limit, then the per-user limit.

        The IP check runs first so anonymous abuse fails fast; the user budget
        is only consumed when the IP check passed and a user is known. When
        both pass, the result with fewer remaining requests is returned.
        """
        ip_result = self.check(ip, ip_config, endpoint)
        if not ip_result.allowed or not user_id:
            return ip_result

        user_result = self.check(f"user:{user_id}", user_config, endpoint)
        if not user_result.allowed:
            return user_result

        return ip_result if ip_result.remaining < user_result.remaining else user_result

    def sweep(self) -> int:
        """Evict entries idle for more than twice the largest window."""
        cleaned = self.store.sweep(self.now_ms(), self._max_window_ms * 2)
        if cleaned:
            logger.info(
                f"Cleaned up {cleaned} expired rate limit entries",
                extra={"event": "rate_limit_cleanup", "cleaned": cleaned},
            )
        return cleaned

    def stats(self) -> dict[str, object]:
        """Count tracked keys, overall and per prefix."""
        keys_by_prefix: dict[str, int] = {}
        total = 0
        for key in self.store.keys():
            prefix = key.split(":", 1)[0]
            keys_by_prefix[prefix] = keys_by_prefix.get(prefix, 0) + 1
            total += 1
        return {"total_keys": total, "keys_by_prefix": keys_by_prefix}

    def clear(self, identifier: str) -> int:
        """
        Remove every counter belonging to ``identifier``.

        Only the identity part of each ``prefix:identifier[:endpoint]`` key is
        compared; endpoint segments never contain ``:``.

        Returns:
            Number of keys removed
        """
        cleared = 0
        for key in list(self.store.keys()):
            _, _, remainder = key.partition(":")
            if remainder != identifier:
                if not remainder.startswith(f"{identifier}:"):
                    continue
                if ":" in remainder[len(identifier) + 1 :]:
                    continue
            if self.store.delete(key):
                cleared += 1
        return cleared

    # -------------------------------------------------------------------------
    # Background cleanup
    # -------------------------------------------------------------------------

    @property
    def cleanup_running(self) -> bool:
        thread = self._cleanup_thread
        return thread is not None and thread.is_alive()

    def start_cleanup(self) -> bool:
        """
        Start the periodic sweep thread.

        Returns:
            True if a thread was started, False if one was already running
        """
        with self._cleanup_lock:
            if self.cleanup_running:
                return False

            self._stop_event = threading.Event()
            self._cleanup_thread = threading.Thread(
                target=self._cleanup_loop,
                args=(self._stop_event,),
                name="RateLimitCleanup",
                daemon=True,
            )
            self._cleanup_thread.start()

        logger.info(
            "Rate limiter cleanup started",
            extra={"event": "rate_limit_cleanup_started", "interval_seconds": self._cleanup_interval},
        )
        return True

    def stop_cleanup(self, timeout: float = 5.0) -> None:
        """Stop the sweep thread. Safe to call when it is not running."""
        with self._cleanup_lock:
            thread = self._cleanup_thread
            self._stop_event.set()
            self._cleanup_thread = None

        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)

    def _cleanup_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._cleanup_interval):
            try:
                self.sweep()
            except Exception:
                # A shared store may be briefly unreachable; retry next tick
                logger.exception("Rate limit cleanup failed", extra={"event": "rate_limit_cleanup_failed"})


_default_limiter: RateLimiter | None = None
_default_limiter_lock = threading.Lock()


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter, creating it on first use."""
    global _default_limiter
    with _default_limiter_lock:
        if _default_limiter is None:
            from edge_guard.config import get_settings

            _default_limiter = RateLimiter(cleanup_interval=get_settings().cleanup_interval_seconds)
        return _default_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    """Replace the process-wide limiter (e.g. with one backed by a shared store)."""
    global _default_limiter
    with _default_limiter_lock:
        if _default_limiter is not None and _default_limiter is not limiter:
            _default_limiter.stop_cleanup()
        _default_limiter = limiter


def check_rate_limit(
    identifier: str,
    config: RateLimitConfig | str | None = "api",
    endpoint: str | None = None,
) -> RateLimitResult:
    """Check ``identifier`` against the process-wide limiter."""
    return get_rate_limiter().check(identifier, config, endpoint)


def combined_rate_limit(
    ip: str,
    user_id: str | None,
    ip_config: RateLimitConfig | str | None = "api",
    user_config: RateLimitConfig | str | None = "api",
    endpoint: str | None = None,
) -> RateLimitResult:
    """Apply the IP then per-user limits using the process-wide limiter."""
    return get_rate_limiter().combined(ip, user_id, ip_config, user_config, endpoint)
