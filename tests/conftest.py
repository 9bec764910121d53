"""Pytest configuration and fixtures."""

import os
from typing import Generator

import pytest
from starlette.requests import Request

from edge_guard.config import get_settings
from edge_guard.ratelimit.limiter import RateLimiter, set_rate_limiter

ALLOWED_ORIGIN = "https://app.example.com"

# Deterministic origin allow-list for CORS and CSRF tests
os.environ.setdefault("EG_ALLOWED_ORIGINS", f"{ALLOWED_ORIGIN},http://localhost:3000")
os.environ.setdefault("EG_DEBUG", "false")


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Give every test fresh settings and no process-wide limiter."""
    get_settings.cache_clear()
    set_rate_limiter(None)
    yield
    set_rate_limiter(None)
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> Generator[RateLimiter, None, None]:
    """Rate limiter driven by the fake clock."""
    rate_limiter = RateLimiter(clock=clock)
    yield rate_limiter
    rate_limiter.stop_cleanup()


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
) -> Request:
    """Build a bare Starlette request without running an app."""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "scheme": "http",
        "server": ("testserver", 80),
        "headers": [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in (headers or {}).items()
        ],
    }
    return Request(scope)
