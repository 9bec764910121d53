"""
Runtime configuration.

All settings come from ``EG_*`` environment variables:

    EG_ALLOWED_ORIGINS: Comma-separated CORS/CSRF origin allow-list. The first
                        entry is the fallback origin for unknown callers.
    EG_CORS_CREDENTIALS: Send Access-Control-Allow-Credentials (default: true)
    EG_RATE_LIMIT_CLEANUP_SECONDS: Interval between rate limit sweeps (default: 300)
    EG_DEFAULT_RATE_LIMIT: Preset applied to the built-in API routes (default: "api")
    EG_DEBUG: Include exception messages in 500 responses (default: false)
    EG_LOG_LEVEL: Root log level (default: INFO)
    EG_MAX_BODY_SIZE: Largest JSON body the handler wrapper reads, in bytes or
                      with a K/M/G suffix (default: 1M)
    EG_WEBHOOK_SECRET: Shared secret for webhook signature checks (default: unset)
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS: list[str] = [
    "http://localhost:8080",
    "http://localhost:5173",
    "http://localhost:3000",
]

# 1 MB
DEFAULT_MAX_BODY_SIZE = 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Invalid {name}: {value}, using default {default}")
        return default
    if parsed <= 0:
        logger.warning(f"Invalid {name}: {value}, using default {default}")
        return default
    return parsed


def _env_size(name: str, default: int) -> int:
    value = os.getenv(name, "").strip().upper()
    if not value:
        return default

    multipliers = {"K": 1024, "M": 1024 * 1024, "G": 1024 * 1024 * 1024}
    try:
        if value[-1] in multipliers:
            parsed = int(value[:-1]) * multipliers[value[-1]]
        else:
            parsed = int(value)
    except ValueError:
        logger.warning(f"Invalid {name}: {value}, using default {default}")
        return default
    if parsed <= 0:
        logger.warning(f"Invalid {name}: {value}, using default {default}")
        return default
    return parsed


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    items = [item.strip().rstrip("/") for item in value.split(",") if item.strip()]
    return items or list(default)


@dataclass(frozen=True)
class Settings:
    """Resolved configuration values."""

    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    cors_credentials: bool = True
    cleanup_interval_seconds: float = 300.0
    default_rate_limit: str = "api"
    debug: bool = False
    log_level: str = "INFO"
    max_body_size: int = DEFAULT_MAX_BODY_SIZE
    webhook_secret: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            allowed_origins=_env_list("EG_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
            cors_credentials=_env_bool("EG_CORS_CREDENTIALS", True),
            cleanup_interval_seconds=_env_float("EG_RATE_LIMIT_CLEANUP_SECONDS", 300.0),
            default_rate_limit=os.getenv("EG_DEFAULT_RATE_LIMIT", "api").strip().lower(),
            debug=_env_bool("EG_DEBUG", False),
            log_level=os.getenv("EG_LOG_LEVEL", "INFO").upper(),
            max_body_size=_env_size("EG_MAX_BODY_SIZE", DEFAULT_MAX_BODY_SIZE),
            webhook_secret=os.getenv("EG_WEBHOOK_SECRET") or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process. Call ``get_settings.cache_clear()`` to reload."""
    return Settings.from_env()
