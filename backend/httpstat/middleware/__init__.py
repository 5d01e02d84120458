"""
Middleware Package

Contains application middleware components.
"""

from httpstat.middleware.rate_limit import RateLimitMiddleware

__all__ = ["RateLimitMiddleware"]
