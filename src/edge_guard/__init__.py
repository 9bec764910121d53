"""
Edge Guard - request validation and rate limiting for HTTP handlers.

Declarative request schemas, a keyed fixed-window rate limiter with burst
allowance, and a handler wrapper that composes them with CORS and
authentication checks.
"""

__version__ = "0.1.0"

# API module is available but not exported by default
# Import explicitly: from edge_guard.api import create_app

__all__ = ["__version__"]
