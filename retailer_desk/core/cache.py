"""Redis-backed cache store with an in-process fallback.

The store is created once by the application on startup and handed to the
services that need it. It never raises to callers: any Redis failure is
logged and treated as a cache miss (reads) or a skipped operation (writes).

Keys are partitioned by colon-delimited prefixes so that one mutation can
sweep exactly the affected family with ``delete_by_pattern``.
"""

from __future__ import annotations

import asyncio
import fnmatch
import hashlib
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from fastapi import Request
from loguru import logger
from redis.exceptions import RedisError

from retailer_desk.core.config import settings

GENERATION_PREFIX = "cachegen"
_CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def generate_cache_key(prefix: str, **kwargs: Any) -> str:
    """Generate a cache key from prefix and keyword arguments.

    ``None`` values are dropped and the remaining items sorted, so requests
    that differ only in parameter order or in omitted filters share a key.
    """

    normalised = sorted((k, v) for k, v in kwargs.items() if v is not None)
    key_str = f"{prefix}:{json.dumps(normalised, sort_keys=True, default=str)}"
    # Hash long keys to keep them short
    if len(key_str) > 200:
        key_str = f"{prefix}:{hashlib.sha256(key_str.encode()).hexdigest()}"
    return key_str


class CacheStore:
    """Key/value cache with per-entry TTL and prefix invalidation."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        *,
        memory_max_entries: int | None = None,
    ) -> None:
        self._client = client
        # Structure: {key: (serialized_value, expiry_timestamp)}; expiry 0 means none
        self._memory: Dict[str, Tuple[str, float]] = {}
        self._memory_max_entries = memory_max_entries or settings.CACHE_MEMORY_MAX_ENTRIES

    @classmethod
    def from_settings(cls) -> "CacheStore":
        if not settings.REDIS_ENABLED:
            return cls()
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        return cls(client)

    @property
    def backend(self) -> str:
        return "redis" if self._client is not None else "memory"

    async def connect(self) -> bool:
        """Ping Redis; fall back to the in-process store if it is unreachable."""

        if self._client is None:
            logger.info("cache_backend_memory")
            return False
        try:
            await asyncio.wait_for(self._client.ping(), timeout=settings.REDIS_SOCKET_TIMEOUT)
        except _CACHE_ERRORS as exc:
            logger.bind(error=str(exc)).warning("cache_redis_unavailable")
            await self._discard_client()
            return False
        logger.info("cache_backend_redis")
        return True

    async def close(self) -> None:
        await self._discard_client()
        self._memory.clear()

    async def _discard_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            try:
                await client.aclose()
            except _CACHE_ERRORS:
                pass

    # ------------------------------------------------------------------
    # Basic operations

    async def get(self, key: str) -> Optional[Any]:
        if self._client is None:
            raw = self._memory_get(key)
        else:
            try:
                raw = await self._client.get(key)
            except _CACHE_ERRORS as exc:
                logger.bind(key=key, error=str(exc)).warning("cache_get_failed")
                return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        raw = json.dumps(value)
        if self._client is None:
            self._memory_set(key, raw, ttl)
            return True
        try:
            if ttl > 0:
                await self._client.setex(key, ttl, raw)
            else:
                await self._client.set(key, raw)
        except _CACHE_ERRORS as exc:
            logger.bind(key=key, error=str(exc)).warning("cache_set_failed")
            return False
        return True

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return self._memory.pop(key, None) is not None
        try:
            return bool(await self._client.delete(key))
        except _CACHE_ERRORS as exc:
            logger.bind(key=key, error=str(exc)).warning("cache_delete_failed")
            return False

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Keys are enumerated first and then deleted; entries written between
        the two steps survive.
        """

        if self._client is None:
            keys = [k for k in list(self._memory) if fnmatch.fnmatchcase(k, pattern)]
            for key in keys:
                del self._memory[key]
            return len(keys)
        deleted = 0
        try:
            keys = [key async for key in self._client.scan_iter(match=pattern, count=500)]
            if keys:
                deleted = await self._client.delete(*keys)
        except _CACHE_ERRORS as exc:
            logger.bind(pattern=pattern, error=str(exc)).warning("cache_sweep_failed")
        return deleted

    async def clear_all(self) -> None:
        self._memory.clear()
        if self._client is not None:
            try:
                await self._client.flushdb()
            except _CACHE_ERRORS as exc:
                logger.bind(error=str(exc)).warning("cache_clear_failed")

    # ------------------------------------------------------------------
    # Generation stamps

    async def get_generation(self, family: str) -> Optional[int]:
        """Return the current generation of a key family, or None if unknown.

        Callers must not cache anything when the generation is unknown.
        """

        key = f"{GENERATION_PREFIX}:{family}"
        if self._client is None:
            raw = self._memory_get(key)
            return int(raw) if raw is not None else 0
        try:
            raw = await self._client.get(key)
        except _CACHE_ERRORS as exc:
            logger.bind(key=key, error=str(exc)).warning("cache_generation_failed")
            return None
        return int(raw) if raw is not None else 0

    async def bump_generation(self, family: str) -> Optional[int]:
        key = f"{GENERATION_PREFIX}:{family}"
        if self._client is None:
            current = self._memory_get(key)
            value = (int(current) if current is not None else 0) + 1
            self._memory_set(key, str(value), 0)
            return value
        try:
            return int(await self._client.incr(key))
        except _CACHE_ERRORS as exc:
            logger.bind(key=key, error=str(exc)).warning("cache_generation_failed")
            return None

    async def invalidate_family(self, family: str) -> int:
        """Bump the family generation, then sweep its keys."""

        await self.bump_generation(family)
        return await self.delete_by_pattern(f"{family}:*")

    async def get_or_load(
        self,
        key: str,
        ttl: int,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for ``key`` or compute, store and return it.

        ``None`` results are not cached.
        """

        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            await self.set(key, value, ttl)
        return value

    # ------------------------------------------------------------------
    # In-process fallback

    def _memory_get(self, key: str) -> Optional[str]:
        entry = self._memory.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if expiry > 0 and time.time() > expiry:
            del self._memory[key]
            return None
        return value

    def _memory_set(self, key: str, value: str, ttl: int) -> None:
        expiry = time.time() + ttl if ttl > 0 else 0
        if key not in self._memory and len(self._memory) >= self._memory_max_entries:
            # Drop the oldest 10% of entries (insertion order); generation
            # stamps are never evicted.
            evictable = [k for k in self._memory if not k.startswith(f"{GENERATION_PREFIX}:")]
            for old_key in evictable[: max(1, self._memory_max_entries // 10)]:
                del self._memory[old_key]
        self._memory[key] = (value, expiry)


def get_cache_store(request: Request) -> CacheStore:
    """FastAPI dependency returning the process-wide cache store."""

    return request.app.state.cache_store
