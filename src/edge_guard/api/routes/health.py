"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import FastAPI

from edge_guard import __version__
from edge_guard.api.middleware.handler import ALL_METHODS, create_handler
from edge_guard.api.schemas.responses import HealthResponse
from edge_guard.ratelimit.limiter import get_rate_limiter
from edge_guard.validation.models import ValidatedRequest


def health_check(request: ValidatedRequest) -> dict:
    """Report liveness and whether the rate limit sweep is running."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        cleanup_running=get_rate_limiter().cleanup_running,
    ).model_dump()


def register(app: FastAPI, path: str = "/health") -> None:
    app.add_route(
        path,
        create_handler(health_check, methods=["GET", "HEAD"], rate_limit="health"),
        methods=ALL_METHODS,
    )
