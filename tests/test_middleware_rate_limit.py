"""Tests for rate limiting middleware helpers."""

import pytest
from conftest import ALLOWED_ORIGIN, make_request
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from edge_guard.api.middleware.rate_limit import get_client_ip, rate_limit_by_user, with_rate_limit
from edge_guard.ratelimit.models import RateLimitConfig

TWO_PER_MINUTE = RateLimitConfig(window_ms=60_000, max_requests=2, key_prefix="two")


async def ping(request: Request) -> JSONResponse:
    return JSONResponse({"pong": True})


def make_client(endpoint) -> TestClient:
    app = FastAPI()
    app.add_route("/ping", endpoint, methods=["GET", "POST", "OPTIONS"])
    return TestClient(app)


# =============================================================================
# get_client_ip tests
# =============================================================================


class TestGetClientIp:
    """Tests for get_client_ip."""

    def test_forwarded_for_first_entry(self):
        request = make_request(headers={"X-Forwarded-For": " 203.0.113.1 , 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.1"

    def test_real_ip(self):
        request = make_request(headers={"X-Real-IP": "198.51.100.2"})
        assert get_client_ip(request) == "198.51.100.2"

    def test_cloudflare_header(self):
        request = make_request(headers={"CF-Connecting-IP": "192.0.2.3"})
        assert get_client_ip(request) == "192.0.2.3"

    def test_precedence(self):
        """X-Forwarded-For wins over the other headers."""
        request = make_request(
            headers={
                "X-Forwarded-For": "203.0.113.1",
                "X-Real-IP": "198.51.100.2",
                "CF-Connecting-IP": "192.0.2.3",
            }
        )
        assert get_client_ip(request) == "203.0.113.1"

    def test_empty_forwarded_for_falls_through(self):
        request = make_request(headers={"X-Forwarded-For": " , 10.0.0.1", "X-Real-IP": "198.51.100.2"})
        assert get_client_ip(request) == "198.51.100.2"

    def test_unknown(self):
        assert get_client_ip(make_request()) == "unknown"


# =============================================================================
# rate_limit_by_user tests
# =============================================================================


class TestRateLimitByUser:
    """Tests for rate_limit_by_user."""

    def test_counts_per_user_and_path(self, limiter):
        request = make_request("POST", "/api/v1/things")
        result = rate_limit_by_user(request, "42", TWO_PER_MINUTE, limiter)

        assert result.allowed is True
        assert result.remaining == 1
        assert list(limiter.store.keys()) == ["two:user:42:_api_v1_things"]


# =============================================================================
# with_rate_limit tests
# =============================================================================


class TestWithRateLimit:
    """Tests for the with_rate_limit wrapper."""

    def test_copies_headers_onto_response(self, limiter):
        client = make_client(with_rate_limit(ping, TWO_PER_MINUTE, limiter=limiter))
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.json() == {"pong": True}
        assert response.headers["x-ratelimit-limit"] == "2"
        assert response.headers["x-ratelimit-remaining"] == "1"

    def test_denies_when_exhausted(self, limiter):
        """The third request gets a 429 with CORS and Retry-After headers."""
        client = make_client(with_rate_limit(ping, TWO_PER_MINUTE, limiter=limiter))
        for _ in range(2):
            client.get("/ping")

        response = client.get("/ping", headers={"Origin": ALLOWED_ORIGIN})

        assert response.status_code == 429
        assert response.json()["error"] == "Too many requests"
        assert response.headers["retry-after"] == "60"
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN

    def test_skips_options(self, limiter):
        client = make_client(with_rate_limit(ping, TWO_PER_MINUTE, limiter=limiter))
        for _ in range(5):
            assert client.options("/ping").status_code == 200
        assert len(limiter.store) == 0

    def test_custom_identifier_and_endpoint(self, limiter):
        """Identity and endpoint extractors shape the key."""
        endpoint = with_rate_limit(
            ping,
            TWO_PER_MINUTE,
            get_identifier=lambda request: request.headers.get("x-api-key", "anon"),
            get_endpoint=lambda request: "ping",
            limiter=limiter,
        )
        make_client(endpoint).post("/ping", headers={"X-Api-Key": "key-1"})
        assert list(limiter.store.keys()) == ["two:key-1:ping"]

    def test_starts_cleanup(self, limiter):
        """The wrapper makes sure stale counters are eventually swept."""
        client = make_client(with_rate_limit(ping, TWO_PER_MINUTE, limiter=limiter))
        client.get("/ping")
        assert limiter.cleanup_running is True

    @pytest.mark.parametrize("preset", ["read", "health"])
    def test_preset_names(self, limiter, preset):
        client = make_client(with_rate_limit(ping, preset, limiter=limiter))
        assert client.get("/ping").status_code == 200
