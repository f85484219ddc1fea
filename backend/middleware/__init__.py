"""
Support Desk Middleware - Request processing middleware.

- rate_limit: Per-IP rate limiting for widget submits and key validation
"""

from .rate_limit import RateLimitMiddleware, check_rate_limit, RateLimitType

__all__ = ["RateLimitMiddleware", "check_rate_limit", "RateLimitType"]
