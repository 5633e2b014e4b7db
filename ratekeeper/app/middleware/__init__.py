"""Middleware package for ratekeeper."""

from ratekeeper.app.middleware.rate_limit import RateLimitMiddleware, get_client_key

__all__ = [
    "RateLimitMiddleware",
    "get_client_key",
]
