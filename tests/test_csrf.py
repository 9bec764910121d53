"""Tests for CSRF protection."""

import json

import pytest
from conftest import ALLOWED_ORIGIN, make_request

from edge_guard.api.middleware.csrf import (
    MAX_TOKEN_AGE_MS,
    csrf_hook,
    generate_csrf_token,
    validate_csrf,
    validate_csrf_token,
)
from edge_guard.validation.models import ValidationContext

NOW_MS = 1_700_000_000_000
ORIGINS = [ALLOWED_ORIGIN]


def _context(method: str = "POST") -> ValidationContext:
    return ValidationContext(
        identity="203.0.113.5",
        user_agent="pytest",
        timestamp_ms=NOW_MS,
        method=method,
        path="/things",
    )


# =============================================================================
# Token format
# =============================================================================


class TestValidateCsrfToken:
    """Tests for validate_csrf_token."""

    def test_fresh_token_passes(self):
        assert validate_csrf_token(generate_csrf_token(NOW_MS), NOW_MS) is None

    def test_generated_token_shape(self):
        """Tokens are a base-36 timestamp and a hex hash."""
        timestamp, digest = generate_csrf_token(NOW_MS).split(".")
        assert int(timestamp, 36) == NOW_MS
        assert len(digest) >= 20

    def test_missing(self):
        assert validate_csrf_token(None, NOW_MS) == "Missing CSRF token"
        assert validate_csrf_token("", NOW_MS) == "Missing CSRF token"

    @pytest.mark.parametrize("token", ["abc", "a.b.c"])
    def test_wrong_part_count(self, token):
        assert validate_csrf_token(token, NOW_MS) == "Invalid CSRF token format"

    def test_bad_timestamp(self):
        assert validate_csrf_token("zz!." + "a" * 20, NOW_MS) == "Invalid CSRF token timestamp"

    def test_expired(self):
        """Tokens older than four hours are rejected."""
        token = generate_csrf_token(NOW_MS - MAX_TOKEN_AGE_MS - 1)
        assert validate_csrf_token(token, NOW_MS) == "CSRF token expired"
        assert validate_csrf_token(generate_csrf_token(NOW_MS - MAX_TOKEN_AGE_MS), NOW_MS) is None

    def test_future_skew(self):
        """Up to one minute of clock skew is tolerated."""
        assert validate_csrf_token(generate_csrf_token(NOW_MS + 30_000), NOW_MS) is None
        assert validate_csrf_token(generate_csrf_token(NOW_MS + 120_000), NOW_MS) == (
            "CSRF token timestamp invalid"
        )

    def test_short_hash(self):
        token = generate_csrf_token(NOW_MS).split(".")[0] + ".short"
        assert validate_csrf_token(token, NOW_MS) == "Invalid CSRF token hash"


# =============================================================================
# Request checks
# =============================================================================


class TestValidateCsrf:
    """Tests for validate_csrf."""

    def test_safe_methods_skip(self):
        """GET requests are never checked."""
        assert validate_csrf(make_request("GET"), ORIGINS, NOW_MS).valid is True

    def test_allowed_origin_with_token(self):
        request = make_request(
            "POST",
            headers={"Origin": ALLOWED_ORIGIN, "X-CSRF-Token": generate_csrf_token(NOW_MS)},
        )
        assert validate_csrf(request, ORIGINS, NOW_MS).valid is True

    def test_referer_fallback(self):
        """The Referer's origin is used when Origin is missing."""
        request = make_request(
            "DELETE",
            headers={
                "Referer": f"{ALLOWED_ORIGIN}/settings?tab=limits",
                "X-CSRF-Token": generate_csrf_token(NOW_MS),
            },
        )
        assert validate_csrf(request, ORIGINS, NOW_MS).valid is True

    def test_foreign_origin_rejected(self):
        """Unlisted origins fail even with a valid token."""
        request = make_request(
            "PUT",
            headers={
                "Origin": "https://evil.example.com",
                "Referer": "https://evil.example.com/page",
                "X-CSRF-Token": generate_csrf_token(NOW_MS),
            },
        )
        result = validate_csrf(request, ORIGINS, NOW_MS)
        assert result.valid is False
        assert result.error == "Origin validation failed"
        assert result.message == "Request origin not allowed"
        assert result.details["origin"] == "Origin not allowed: https://evil.example.com"

    def test_missing_token_rejected(self):
        request = make_request("PATCH", headers={"Origin": ALLOWED_ORIGIN})
        result = validate_csrf(request, ORIGINS, NOW_MS)
        assert result.valid is False
        assert result.error == "Missing CSRF token"
        assert result.message == "Invalid or missing CSRF token"


class TestCsrfHook:
    """Tests for the before_validation hook."""

    @pytest.mark.asyncio
    async def test_passes_valid_request(self):
        hook = csrf_hook(ORIGINS)
        request = make_request(
            "POST",
            headers={"Origin": ALLOWED_ORIGIN, "X-CSRF-Token": generate_csrf_token()},
        )
        assert await hook(request, _context()) is None

    @pytest.mark.asyncio
    async def test_rejects_with_403(self, caplog):
        """Failures produce a 403 with CORS headers and are logged."""
        hook = csrf_hook(ORIGINS)
        request = make_request("POST", headers={"Origin": ALLOWED_ORIGIN})

        response = await hook(request, _context())

        assert response.status_code == 403
        assert json.loads(response.body) == {
            "error": "Forbidden",
            "details": "Invalid or missing CSRF token",
        }
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert "CSRF validation failed" in caplog.text

    @pytest.mark.asyncio
    async def test_defaults_to_configured_origins(self):
        """Without an explicit list the CORS allow-list is used."""
        hook = csrf_hook()
        request = make_request(
            "POST",
            headers={"Origin": "http://localhost:3000", "X-CSRF-Token": generate_csrf_token()},
        )
        assert await hook(request, _context()) is None
