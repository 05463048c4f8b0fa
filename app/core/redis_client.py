# app/core/redis_client.py
from __future__ import annotations

"""
ReelNest — Redis Client (async)
===============================
Single source of truth for Redis access.

What this provides
------------------
• Connection manager with retries and jittered backoff
• JSON set/get helpers (title-metadata cache)
• Async **distributed lock** for the maintenance jobs

Public API (imported as `redis_wrapper`)
----------------------------------------
- await redis_wrapper.connect() / await redis_wrapper.close() / await redis_wrapper.is_connected()
- redis_wrapper.client / redis_wrapper.connected
- await redis_wrapper.json_set(key, value, ttl_seconds=None)
- await redis_wrapper.json_get(key, default=None)
- async with redis_wrapper.lock(name, timeout=10, blocking_timeout=3): ...

Design notes
------------
• The cache is optional: the API starts without Redis and callers check
  `connected` before using the JSON helpers.
• Locks are strict: `LockNotAcquiredError` (a `TimeoutError`) if not acquired
  within `blocking_timeout`. Errors raised inside the locked block pass through.
"""

import asyncio
import json
import logging
import os
import random
from contextlib import asynccontextmanager
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Tunables
# ─────────────────────────────────────────────────────────────────────────────
MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "3"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "reelnest-api")


class LockNotAcquiredError(TimeoutError):
    """Another holder kept the lock past `blocking_timeout`."""


class RedisClient:
    """Redis connection manager (asyncio)."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[Any] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """
        Establish a connection with retries.

        Steps
        -----
        - **[Step 1]** Reuse a healthy client when possible.
        - **[Step 2]** Attempt connection with backoff and jitter.

        Raises
        ------
        RuntimeError
            When every attempt failed.
        """
        if self._client is not None and await self.is_connected():
            return
        self._client = None

        last_err: Optional[Exception] = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                client = redis.Redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    health_check_interval=HEALTH_CHECK_INTERVAL,
                    socket_timeout=SOCKET_TIMEOUT,
                    socket_connect_timeout=SOCKET_TIMEOUT,
                    client_name=CLIENT_NAME,
                )
                await client.ping()
                self._client = client
                logger.info("✅ Connected to Redis")
                return
            except (RedisError, OSError) as e:
                last_err = e
                delay = BASE_DELAY * (2 ** (attempt - 1)) + random.uniform(0, BASE_DELAY)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %r (retrying in %.2fs)",
                    attempt, MAX_RETRIES, e, delay,
                )
                await asyncio.sleep(delay)

        logger.error("❌ Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose() if hasattr(self._client, "aclose") else await self._client.close()
            logger.info("🛑 Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    @property
    def connected(self) -> bool:
        """True once `connect()` succeeded (no round-trip)."""
        return self._client is not None

    @property
    def client(self) -> Any:
        """Low-level client; `connect()` must have been called at startup."""
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    # ── JSON helpers ─────────────────────────────────────────────────────────
    async def json_set(self, key: str, value: Any, *, ttl_seconds: Optional[int] = None) -> None:
        data = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        if ttl_seconds:
            await self.client.set(key, data, ex=ttl_seconds)
        else:
            await self.client.set(key, data)

    async def json_get(self, key: str, default: Any = None) -> Any:
        """JSON getter; `default` on a miss or an unparsable payload."""
        raw = await self.client.get(key)
        if raw is None:
            return default
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(raw)
        except ValueError:
            return default

    # ── lock ─────────────────────────────────────────────────────────────────
    @asynccontextmanager
    async def lock(self, name: str, *, timeout: int = 10, blocking_timeout: float = 3, sleep: float = 0.2):
        """
        Process-safe mutex backed by the client's native lock.

        Raises
        ------
        RuntimeError
            Redis is not connected.
        LockNotAcquiredError
            The lock was not acquired within `blocking_timeout`.
        """
        lock_obj = self.client.lock(name, timeout=timeout, blocking_timeout=blocking_timeout, sleep=sleep)
        acquired = bool(await lock_obj.acquire(blocking=True, blocking_timeout=blocking_timeout))
        if not acquired:
            raise LockNotAcquiredError(f"Failed to acquire lock: {name}")
        try:
            yield
        finally:
            try:
                await lock_obj.release()
            except RedisError:
                logger.debug("Redis lock release failed for %s", name, exc_info=True)


redis_wrapper = RedisClient(settings.REDIS_URL)

__all__ = ["LockNotAcquiredError", "RedisClient", "redis_wrapper"]
