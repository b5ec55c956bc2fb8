"""API route handlers."""

from renderproxy.api import health, proxy

__all__ = [
    "health",
    "proxy",
]
