"""
FastAPI Application Setup.

Application factory for the Edge Guard demo API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from edge_guard import __version__
from edge_guard.api.middleware.logging import RequestLoggingMiddleware
from edge_guard.api.routes import contact, health, rate_limits, webhooks
from edge_guard.config import Settings, get_settings
from edge_guard.ratelimit.limiter import RateLimiter, get_rate_limiter, set_rate_limiter

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.

    Starts the rate limit sweep on startup and stops it on shutdown.
    """
    logger.info("Edge Guard API starting up...")
    logger.info(f"Version: {__version__}")

    limiter = get_rate_limiter()
    limiter.start_cleanup()

    yield

    logger.info("Edge Guard API shutting down...")
    limiter.stop_cleanup()


def create_app(
    title: str = "Edge Guard API",
    *,
    settings: Settings | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        title: Application title for OpenAPI docs
        settings: Configuration (read from the environment by default)
        limiter: Rate limiter to install as the process-wide limiter

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    configure_logging(settings)

    if limiter is not None:
        set_rate_limiter(limiter)

    app = FastAPI(
        title=title,
        description="Request validation and rate limiting demo API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    health.register(app)
    rate_limits.register(app, settings)
    contact.register(app)
    if settings.webhook_secret:
        webhooks.register(app, settings.webhook_secret)

    logger.info(
        "Edge Guard API configured",
        extra={
            "event": "app_configured",
            "allowed_origins": settings.allowed_origins,
            "default_rate_limit": settings.default_rate_limit,
            "webhooks_enabled": bool(settings.webhook_secret),
        },
    )
    return app
