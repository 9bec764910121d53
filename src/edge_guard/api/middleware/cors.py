"""
CORS (Cross-Origin Resource Sharing) header policy.

The handler wrapper answers preflight requests itself and stamps these
headers on every response, so a wrapped endpoint behaves the same whether or
not the hosting app installs its own CORS middleware.
"""

from dataclasses import dataclass, field

from edge_guard.config import Settings, get_settings

DEFAULT_ALLOW_METHODS: list[str] = [
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
]

DEFAULT_ALLOW_HEADERS: list[str] = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-csrf-token",
    "x-webhook-signature",
    "x-webhook-timestamp",
]

# Cache preflight for 24 hours
DEFAULT_MAX_AGE = 86400


def normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/")


def is_origin_allowed(origin: str | None, allowed_origins: list[str] | tuple[str, ...]) -> bool:
    """Check an Origin value against an allow-list, ignoring trailing slashes."""
    if not origin:
        return False
    normalized = normalize_origin(origin)
    return any(normalize_origin(allowed) == normalized for allowed in allowed_origins)


@dataclass(frozen=True)
class CorsPolicy:
    """
    Origin allow-list and the CORS headers derived from it.

    Requests from an unlisted origin, or without an Origin header, get the
    first allowed origin back, which browsers will then refuse to match.
    """

    allowed_origins: tuple[str, ...] = field(default_factory=tuple)
    allow_credentials: bool = True
    allow_methods: tuple[str, ...] = tuple(DEFAULT_ALLOW_METHODS)
    allow_headers: tuple[str, ...] = tuple(DEFAULT_ALLOW_HEADERS)
    max_age: int = DEFAULT_MAX_AGE

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides) -> "CorsPolicy":
        settings = settings or get_settings()
        values = {
            "allowed_origins": tuple(settings.allowed_origins),
            "allow_credentials": settings.cors_credentials,
        }
        values.update(overrides)
        if "allowed_origins" in overrides:
            values["allowed_origins"] = tuple(overrides["allowed_origins"])
        return cls(**values)

    def resolve_origin(self, origin: str | None) -> str:
        """Pick the value for Access-Control-Allow-Origin."""
        if origin and is_origin_allowed(origin, self.allowed_origins):
            return normalize_origin(origin)
        if "*" in self.allowed_origins and not self.allow_credentials:
            return "*"
        fallback = [o for o in self.allowed_origins if o != "*"]
        return normalize_origin(fallback[0]) if fallback else "null"

    def headers(self, origin: str | None) -> dict[str, str]:
        """CORS headers for a request carrying ``origin``."""
        headers = {
            "Access-Control-Allow-Origin": self.resolve_origin(origin),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Max-Age": str(self.max_age),
            "Vary": "Origin",
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers
