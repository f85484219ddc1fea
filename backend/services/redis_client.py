"""
Redis Connection Manager - shared counter store.

Provides:
- Async connection with health checks and reconnection
- Fallback mode when Redis is disabled or unreachable (callers skip
  whatever they would have stored)
- Singleton accessor for the app

Usage:
    from services.redis_client import get_redis

    redis = await get_redis()
    if not redis.fallback_mode:
        count = await redis.incr("supportdesk:rl:chat_msg:10.0.0.1")
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import redis.asyncio as redis_async
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclass
class RedisManager:
    """
    Redis connection manager with fallback support.

    Every operation switches the manager into fallback mode on a
    connection error instead of raising.
    """

    url: str = "redis://localhost:6379/0"
    enabled: bool = True

    # Connection state
    _client: Any = field(default=None, repr=False)
    _available: bool = field(default=False, repr=False)
    _fallback_mode: bool = field(default=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _initialized: bool = field(default=False, repr=False)

    @classmethod
    def from_client(cls, client: Any) -> "RedisManager":
        """Wrap an already connected client (tests pass a fakeredis instance)."""
        manager = cls(url="<injected>")
        manager._client = client
        manager._available = True
        manager._initialized = True
        return manager

    @property
    def available(self) -> bool:
        """Check if Redis is available."""
        return self._available and not self._fallback_mode

    @property
    def fallback_mode(self) -> bool:
        """Check if operating in fallback mode."""
        return self._fallback_mode

    async def connect(self) -> bool:
        """
        Establish Redis connection.

        Returns:
            True if connected, False if fallback mode activated
        """
        if not self.enabled:
            logger.info("Redis disabled by config, using fallback mode")
            self._fallback_mode = True
            self._initialized = True
            return False

        async with self._lock:
            if self._initialized and self._available:
                return True

            try:
                self._client = redis_async.from_url(
                    self.url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5.0,
                    socket_timeout=5.0,
                )
                await self._client.ping()
                self._available = True
                self._fallback_mode = False
                self._initialized = True
                logger.info(f"Redis connected: {self.url}")
                return True
            except (RedisError, OSError) as e:
                logger.warning(f"Redis connection failed: {e}, using fallback mode")
                self._fallback_mode = True
                self._available = False
                self._initialized = True
                return False

    async def disconnect(self) -> None:
        """Close Redis connection."""
        async with self._lock:
            if self._client:
                try:
                    await self._client.aclose()
                except (RedisError, OSError) as e:
                    logger.warning(f"Error closing Redis: {e}")
                finally:
                    self._client = None
                    self._available = False

    async def health_check(self) -> Dict[str, Any]:
        """
        Check Redis health status.

        Returns:
            Dict with status, mode, and latency info
        """
        if self._fallback_mode:
            return {"status": "fallback", "mode": "none"}

        if not self._client:
            return {"status": "disconnected", "mode": "none"}

        try:
            start = asyncio.get_running_loop().time()
            await self._client.ping()
            latency_ms = (asyncio.get_running_loop().time() - start) * 1000
            return {
                "status": "connected",
                "mode": "redis",
                "latency_ms": round(latency_ms, 2),
            }
        except (RedisError, OSError) as e:
            self._enter_fallback()
            logger.warning(f"Redis health check failed: {e}, switching to fallback")
            return {"status": "error", "mode": "fallback", "error": str(e)}

    # === Counter Operations ===

    async def get(self, key: str) -> Optional[str]:
        """Get a value by key (None in fallback mode)."""
        if self._fallback_mode:
            return None

        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            self._enter_fallback()
            return None

    async def incr(self, key: str) -> int:
        """Increment a counter (0 in fallback mode)."""
        if self._fallback_mode:
            return 0

        try:
            return await self._client.incr(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis INCR failed for {key}: {e}")
            self._enter_fallback()
            return 0

    async def expire(self, key: str, ttl: int) -> bool:
        """Set TTL on a key."""
        if self._fallback_mode:
            return False

        try:
            await self._client.expire(key, ttl)
            return True
        except (RedisError, OSError) as e:
            logger.warning(f"Redis EXPIRE failed for {key}: {e}")
            return False

    async def get_ttl(self, key: str) -> int:
        """Get remaining TTL for a key (-1 when unknown)."""
        if self._fallback_mode:
            return -1

        try:
            return await self._client.ttl(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis TTL failed for {key}: {e}")
            return -1

    # === Internal ===

    def _enter_fallback(self) -> None:
        """Switch to fallback mode."""
        if not self._fallback_mode:
            logger.warning("Redis unavailable, switching to fallback mode")
            self._fallback_mode = True
            self._available = False

    async def try_reconnect(self) -> bool:
        """Attempt to reconnect to Redis."""
        if not self._fallback_mode:
            return True

        logger.info("Attempting Redis reconnection...")
        self._fallback_mode = False
        self._initialized = False
        return await self.connect()


# Singleton instance
_redis_manager: Optional[RedisManager] = None


async def get_redis() -> RedisManager:
    """
    Get the Redis manager singleton.

    Lazily connects on first call; an unreachable server leaves the
    manager in fallback mode.
    """
    global _redis_manager

    if _redis_manager is None:
        from config import runtime_config

        manager = RedisManager(
            url=runtime_config.redis_url,
            enabled=runtime_config.redis_enabled,
        )
        await manager.connect()
        if _redis_manager is None:
            _redis_manager = manager

    return _redis_manager


def set_redis(manager: Optional[RedisManager]) -> None:
    """Install (or clear, with None) the manager singleton."""
    global _redis_manager
    _redis_manager = manager


async def close_redis() -> None:
    """Close the Redis connection (call on shutdown)."""
    global _redis_manager
    if _redis_manager:
        await _redis_manager.disconnect()
        _redis_manager = None
