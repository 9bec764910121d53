"""
Edge Guard API Module.

Handler wrapper, middleware and a small demo application.
"""

from edge_guard.api.app import create_app

__all__ = ["create_app"]
