"""
Agent Server API module
"""

from .server import create_app, create_routes, CONTEXT_KEY

__all__ = ["create_app", "create_routes", "CONTEXT_KEY"]
