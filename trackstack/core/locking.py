"""
Concurrency Guard

Per-key locks that serialize:
- purchase merges into the same position (key: portfolio + ticker)
- refreshes of the same currency-pair rate (key: ordered pair)

Acquisition polls until the lock is free or the wait bound is reached,
then fails with a retryable LockTimeoutError. Every lock expires on its
own after the hold timeout, so a crashed holder cannot block a key
forever.

The Redis backend is shared by every running instance. The in-memory
backend only serializes callers inside one process and is meant for
local development and tests.
"""
import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional, Tuple
from loguru import logger

from trackstack.config import settings
from trackstack.db.redis_client import RedisClient, redis_client
from trackstack.utils.exceptions import LockTimeoutError

LOCK_KEY_PREFIX = "lock:"


def position_lock_key(portfolio_id: int, ticker: str) -> str:
    """Lock key of a position, valid before the position row exists."""
    return f"position:{portfolio_id}:{ticker.upper()}"


def currency_lock_key(from_currency: str, to_currency: str) -> str:
    """Lock key of an ordered currency pair."""
    return f"currency:{from_currency.upper()}:{to_currency.upper()}"


class LockBackend(ABC):
    """Storage for lock ownership tokens."""

    @abstractmethod
    async def try_acquire(self, key: str, token: str, ttl: float) -> bool:
        """Take the lock if free. Returns True on success."""

    @abstractmethod
    async def release(self, key: str, token: str) -> bool:
        """Release the lock if token still owns it."""


class RedisLockBackend(LockBackend):
    """SET NX PX lock with compare-and-delete release."""

    def __init__(self, client: RedisClient):
        self._redis = client

    async def try_acquire(self, key: str, token: str, ttl: float) -> bool:
        return await self._redis.set_if_absent(
            LOCK_KEY_PREFIX + key, token, max(1, int(ttl * 1000))
        )

    async def release(self, key: str, token: str) -> bool:
        return await self._redis.delete_if_equals(LOCK_KEY_PREFIX + key, token)


class InMemoryLockBackend(LockBackend):
    """Single-process lock table with expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._locks: Dict[str, Tuple[str, float]] = {}

    async def try_acquire(self, key: str, token: str, ttl: float) -> bool:
        now = self._clock()
        held = self._locks.get(key)
        if held is not None and held[1] > now:
            return False
        self._locks[key] = (token, now + ttl)
        return True

    async def release(self, key: str, token: str) -> bool:
        held = self._locks.get(key)
        if held is None or held[0] != token:
            return False
        del self._locks[key]
        return True

    def is_locked(self, key: str) -> bool:
        held = self._locks.get(key)
        return held is not None and held[1] > self._clock()


@dataclass(frozen=True)
class LockHandle:
    """Proof of ownership returned by LockManager.acquire."""
    key: str
    token: str


class LockManager:
    """
    Acquire/release per-key locks with bounded waiting.

    Args:
        backend: Lock storage
        timeout: Seconds after which a held lock expires on its own
        max_wait: Seconds a caller waits before giving up
        retry_interval: Seconds between acquisition attempts
    """

    def __init__(
        self,
        backend: LockBackend,
        timeout: float = 30.0,
        max_wait: float = 5.0,
        retry_interval: float = 0.1,
    ):
        self.backend = backend
        self.timeout = timeout
        self.max_wait = max_wait
        self.retry_interval = retry_interval

    async def acquire(self, key: str, max_wait: Optional[float] = None) -> LockHandle:
        """
        Wait for the lock on key.

        Raises:
            LockTimeoutError: The lock stayed busy for longer than max_wait
        """
        max_wait = self.max_wait if max_wait is None else max_wait
        token = uuid.uuid4().hex
        loop = asyncio.get_running_loop()
        started = loop.time()

        while True:
            if await self.backend.try_acquire(key, token, self.timeout):
                logger.debug(f"Acquired lock: {key}")
                return LockHandle(key=key, token=token)

            waited = loop.time() - started
            if waited >= max_wait:
                logger.warning(f"Lock wait timed out after {waited:.2f}s: {key}")
                raise LockTimeoutError(key=key, waited=round(waited, 3))

            logger.debug(f"Lock busy, retrying: {key}")
            await asyncio.sleep(min(self.retry_interval, max(0.0, max_wait - waited)))

    async def release(self, handle: LockHandle) -> None:
        """Release a lock. An expired lock is only logged; the work already ran."""
        released = await self.backend.release(handle.key, handle.token)
        if released:
            logger.debug(f"Released lock: {handle.key}")
        else:
            logger.warning(f"Lock expired before release: {handle.key}")

    @asynccontextmanager
    async def hold(self, key: str, max_wait: Optional[float] = None) -> AsyncIterator[LockHandle]:
        """
        Hold the lock on key for the duration of the block.

        Example:
            async with lock_manager.hold(position_lock_key(1, "AAPL")):
                ...
        """
        handle = await self.acquire(key, max_wait)
        try:
            yield handle
        finally:
            await self.release(handle)


def create_lock_manager() -> LockManager:
    """Build the lock manager configured in settings."""
    if settings.LOCK_BACKEND == "memory":
        backend: LockBackend = InMemoryLockBackend()
    elif settings.LOCK_BACKEND == "redis":
        backend = RedisLockBackend(redis_client)
    else:
        raise ValueError(f"Unknown lock backend: {settings.LOCK_BACKEND}")

    return LockManager(
        backend,
        timeout=settings.LOCK_TIMEOUT_SECONDS,
        max_wait=settings.LOCK_MAX_WAIT_SECONDS,
        retry_interval=settings.LOCK_RETRY_INTERVAL_SECONDS,
    )


# Global lock manager instance
lock_manager = create_lock_manager()
