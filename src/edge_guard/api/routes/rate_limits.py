"""
Rate limit administration endpoints.

Both endpoints require a bearer token. Clearing counters also requires
CSRF protection since it changes state.
"""

import logging

from fastapi import FastAPI

from edge_guard.api.middleware.csrf import csrf_hook
from edge_guard.api.middleware.handler import ALL_METHODS, create_handler
from edge_guard.api.schemas.responses import RateLimitClearResponse, RateLimitStatsResponse
from edge_guard.config import Settings
from edge_guard.ratelimit.limiter import get_rate_limiter
from edge_guard.ratelimit.models import RATE_LIMIT_PRESETS
from edge_guard.validation.models import ValidatedRequest

logger = logging.getLogger(__name__)


def get_stats(request: ValidatedRequest) -> dict:
    """Return tracked key counts and the configured presets."""
    stats = get_rate_limiter().stats()
    return RateLimitStatsResponse(
        total_keys=stats["total_keys"],
        keys_by_prefix=stats["keys_by_prefix"],
        presets={name: config.to_dict() for name, config in RATE_LIMIT_PRESETS.items()},
    ).model_dump()


def clear_identifier(request: ValidatedRequest) -> dict:
    """Remove all counters for the identifier in the path."""
    identifier = request.path_params["identifier"]
    cleared = get_rate_limiter().clear(identifier)
    logger.info(
        f"Cleared {cleared} rate limit keys for {identifier}",
        extra={
            "event": "rate_limit_cleared",
            "identifier": identifier,
            "cleared": cleared,
            "client_ip": request.context.identity,
        },
    )
    return RateLimitClearResponse(identifier=identifier, cleared=cleared).model_dump()


def register(app: FastAPI, settings: Settings, prefix: str = "/api/v1/rate-limits") -> None:
    app.add_route(
        prefix,
        create_handler(
            get_stats,
            methods=["GET"],
            rate_limit=settings.default_rate_limit,
            require_auth=True,
        ),
        methods=ALL_METHODS,
    )
    app.add_route(
        f"{prefix}/{{identifier}}",
        create_handler(
            clear_identifier,
            methods=["DELETE"],
            rate_limit="write",
            require_auth=True,
            before_validation=csrf_hook(),
        ),
        methods=ALL_METHODS,
    )
