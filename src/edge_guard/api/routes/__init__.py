"""
Routes for the Edge Guard demo API.

Every endpoint is built with ``create_handler`` and registered for all
methods, so preflights and 405s come from the wrapper, not the router.
"""

from edge_guard.api.routes import contact, health, rate_limits, webhooks

__all__ = ["contact", "health", "rate_limits", "webhooks"]
