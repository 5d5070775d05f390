"""
Track Your Stack - Redis Client

Shared state for every running instance: distributed locks and
request quota counters.
"""
import redis.asyncio as redis
from loguru import logger

from trackstack.config import settings
from trackstack.utils.time import utcnow


# Deletes the key only if it still holds the caller's token
_COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Window lengths in seconds for quota counters
COUNTER_WINDOWS = {
    "minute": 60,
    "day": 86400,
}


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self):
        self._client: redis.Redis | None = None

    async def initialize(self):
        """Initialize Redis connection."""
        try:
            redis_url = settings.redis_url
            self._client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self._client.ping()
            logger.info(f"Redis connected: {redis_url.split('@')[-1] if '@' in redis_url else redis_url}")
        except Exception as e:
            logger.error(f"Redis connection failed: {e}")
            raise

    async def close(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")
        return self._client

    # =========================
    # Lock Primitives
    # =========================
    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """SET key value NX PX ttl. Returns True if the key was set."""
        result = await self.client.set(key, value, nx=True, px=ttl_ms)
        return bool(result)

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete key only while it still holds value."""
        deleted = await self.client.eval(_COMPARE_AND_DELETE, 1, key, value)
        return bool(deleted)

    # =========================
    # Quota Counters
    # =========================
    def _counter_key(self, name: str, window: str) -> str:
        now = utcnow()
        if window == "minute":
            bucket = now.strftime("%Y%m%d%H%M")
        else:
            bucket = now.strftime("%Y%m%d")
        return f"ratelimit:{name}:{window}:{bucket}"

    async def increment_counter(self, name: str, window: str = "day") -> int:
        """Increment the counter for the current window and return its value."""
        key = self._counter_key(name, window)
        count = await self.client.incr(key)
        if count == 1:
            # Keep one spare window so late readers still see the count
            await self.client.expire(key, COUNTER_WINDOWS[window] * 2)
        return count


# Global Redis client instance
redis_client = RedisClient()
