"""
Rate Limiting Middleware - Redis-backed request throttling.

Provides per-IP rate limiting for:
- Widget message submits (POST /api/chat/{widget_id}/messages)
- Admin API key validation and connection tests (each call hits the
  completion service)

Uses Redis INCR with EXPIRE for fixed windows. Gracefully disables when
Redis is unavailable (logs warning and lets the request through).

Usage:
    app.add_middleware(RateLimitMiddleware)

    allowed, count, limit = await check_rate_limit(RateLimitType.CHAT_MESSAGE, client_ip)
"""

import logging
import re
from enum import Enum
from typing import Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from services.redis_client import get_redis

logger = logging.getLogger(__name__)


class RateLimitType(Enum):
    """Rate limit types with their Redis key patterns."""
    CHAT_MESSAGE = "supportdesk:rl:chat_msg"  # Per IP
    ADMIN_VALIDATE = "supportdesk:rl:admin_validate"  # Per IP, stricter


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    # Check X-Forwarded-For header (set by nginx/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take first IP in chain (original client)
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def _default_limit(limit_type: RateLimitType) -> int:
    from config import runtime_config

    if limit_type == RateLimitType.CHAT_MESSAGE:
        return runtime_config.rate_limit_chat_msg
    if limit_type == RateLimitType.ADMIN_VALIDATE:
        return runtime_config.rate_limit_admin_validate
    return 30


async def check_rate_limit(
    limit_type: RateLimitType,
    identifier: str,
    limit: Optional[int] = None,
    window_seconds: int = 60,
) -> Tuple[bool, int, int]:
    """
    Count one request and check it against the limit.

    Args:
        limit_type: Type of rate limit to check
        identifier: Unique identifier (usually the client IP)
        limit: Max requests per window (uses config default if None)
        window_seconds: Time window in seconds

    Returns:
        Tuple of (allowed, current_count, limit)
    """
    if limit is None:
        limit = _default_limit(limit_type)

    redis = await get_redis()
    if redis.fallback_mode:
        logger.debug("Rate limiting disabled (Redis fallback mode)")
        return (True, 0, limit)

    key = f"{limit_type.value}:{identifier}"
    count = await redis.incr(key)
    if redis.fallback_mode:
        # INCR itself failed
        return (True, 0, limit)

    # Set TTL on first request in window
    if count == 1:
        await redis.expire(key, window_seconds)

    allowed = count <= limit
    if not allowed:
        logger.warning(
            f"Rate limit exceeded: {limit_type.name} for {identifier} "
            f"({count}/{limit} in {window_seconds}s)"
        )
    return (allowed, count, limit)


async def get_rate_limit_remaining(
    limit_type: RateLimitType,
    identifier: str,
    limit: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Get remaining requests in the current window.

    Returns:
        Tuple of (remaining, reset_in_seconds)
    """
    if limit is None:
        limit = _default_limit(limit_type)

    redis = await get_redis()
    if redis.fallback_mode:
        return (limit, 0)

    key = f"{limit_type.value}:{identifier}"
    current = await redis.get(key)
    count = int(current) if current else 0
    ttl = await redis.get_ttl(key)
    return (max(0, limit - count), ttl if ttl > 0 else 0)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware for REST endpoints.

    Only POSTs to the paths below are counted; polling the widget
    snapshot is never throttled.
    """

    # path pattern -> (type, window_seconds)
    RATE_LIMITED_PATHS = (
        (re.compile(r"^/api/chat/[^/]+/messages$"), RateLimitType.CHAT_MESSAGE, 60),
        (re.compile(r"^/api/admin/ai-agent/(validate|test)$"), RateLimitType.ADMIN_VALIDATE, 60),
    )

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request with rate limiting."""
        if request.method != "POST":
            return await call_next(request)

        path = request.url.path
        for pattern, limit_type, window in self.RATE_LIMITED_PATHS:
            if not pattern.match(path):
                continue

            client_ip = _get_client_ip(request)
            allowed, count, limit = await check_rate_limit(limit_type, client_ip, window_seconds=window)

            if not allowed:
                remaining, reset_in = await get_rate_limit_remaining(limit_type, client_ip, limit=limit)
                return JSONResponse(
                    status_code=429,
                    content={
                        "detail": "Rate limit exceeded",
                        "retry_after": reset_in,
                    },
                    headers={
                        "X-RateLimit-Limit": str(limit),
                        "X-RateLimit-Remaining": str(remaining),
                        "X-RateLimit-Reset": str(reset_in),
                        "Retry-After": str(reset_in),
                    },
                )

            response = await call_next(request)
            remaining, reset_in = await get_rate_limit_remaining(limit_type, client_ip, limit=limit)
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = str(remaining)
            response.headers["X-RateLimit-Reset"] = str(reset_in)
            return response

        return await call_next(request)
