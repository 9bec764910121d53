"""
Pydantic response schemas for the built-in API routes.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Uniform error body returned by every rejection path."""

    error: str = Field(..., description="Short error message")
    details: str | list[str] | None = Field(None, description="Field errors or extra context")


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str = Field("healthy", description="Service status")
    version: str = Field(..., description="Package version")
    timestamp: str = Field(..., description="ISO-8601 time of the check")
    cleanup_running: bool = Field(..., description="Whether the rate limit sweep thread is alive")

    model_config = {"extra": "forbid"}


class RateLimitStatsResponse(BaseModel):
    """Counts of tracked rate limit keys."""

    total_keys: int = Field(..., ge=0, description="Number of tracked keys")
    keys_by_prefix: dict[str, int] = Field(default_factory=dict, description="Key count per tier prefix")
    presets: dict[str, dict[str, Any]] = Field(default_factory=dict, description="Configured presets")


class RateLimitClearResponse(BaseModel):
    """Result of clearing the counters of one identity."""

    identifier: str = Field(..., description="Identity whose counters were removed")
    cleared: int = Field(..., ge=0, description="Number of keys removed")


class ContactSubmissionResponse(BaseModel):
    """Acknowledgement for an accepted contact form submission."""

    received: bool = Field(True, description="Submission accepted")
    submission: dict[str, Any] = Field(..., description="Sanitized submission")


class WebhookAckResponse(BaseModel):
    """Acknowledgement for a verified webhook event."""

    received: bool = Field(True, description="Event accepted")
    id: str = Field(..., description="Sender's event id")
    event: str = Field(..., description="Event type")
