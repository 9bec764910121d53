"""
Middleware for Edge Guard.

Per-endpoint wrappers (``create_handler``, ``with_rate_limit``) and the
app-level request logging middleware.
"""

from edge_guard.api.middleware.cors import CorsPolicy, is_origin_allowed
from edge_guard.api.middleware.csrf import (
    CSRFCheck,
    csrf_hook,
    generate_csrf_token,
    validate_csrf,
    validate_csrf_token,
)
from edge_guard.api.middleware.handler import (
    ALL_METHODS,
    HandlerOptions,
    build_context,
    create_handler,
    has_bearer_token,
)
from edge_guard.api.middleware.logging import RequestLoggingMiddleware
from edge_guard.api.middleware.rate_limit import (
    get_client_ip,
    rate_limit_by_user,
    with_rate_limit,
)
from edge_guard.api.middleware.webhook import (
    WebhookCheck,
    generate_signature,
    verify_secret,
    verify_webhook_request,
    verify_webhook_signature,
    webhook_hook,
)
from edge_guard.api.middleware.validation import (
    JSONParseError,
    parse_json_body,
    sanitize_query_value,
)

__all__ = [
    "CorsPolicy",
    "is_origin_allowed",
    "CSRFCheck",
    "csrf_hook",
    "generate_csrf_token",
    "validate_csrf",
    "validate_csrf_token",
    "ALL_METHODS",
    "HandlerOptions",
    "build_context",
    "create_handler",
    "has_bearer_token",
    "RequestLoggingMiddleware",
    "get_client_ip",
    "rate_limit_by_user",
    "with_rate_limit",
    "WebhookCheck",
    "generate_signature",
    "verify_secret",
    "verify_webhook_request",
    "verify_webhook_signature",
    "webhook_hook",
    "JSONParseError",
    "parse_json_body",
    "sanitize_query_value",
]
