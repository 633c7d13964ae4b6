"""
Cache stores for the Storefront service.

Both stores expose the same four operations: has, get, set and delete_many.
Entries never expire; they live until invalidated or the process restarts.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import redis.asyncio as redis
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shared.config import BaseConfig
from shared.errors import CacheSerializationError, ServiceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .keys import VALUE_TYPES, CacheKey


class CacheStore(ABC):
    """Key-value store holding typed cache values."""

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def has(self, key: CacheKey) -> bool:
        """Return True when ``key`` holds a value."""

    @abstractmethod
    async def get(self, key: CacheKey) -> Optional[Any]:
        """Return the value under ``key``, or None on a miss."""

    @abstractmethod
    async def set(self, key: CacheKey, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete_many(self, keys: Iterable[CacheKey]) -> int:
        """Remove each key that is present. Returns how many were removed."""


class InMemoryCacheStore(CacheStore):
    """Process-local cache store.

    Every operation completes without awaiting, so under asyncio each one is
    atomic with respect to other requests.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self._entries: Dict[CacheKey, Any] = {}
        self.metrics = metrics

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self):
        return list(self._entries)

    async def has(self, key: CacheKey) -> bool:
        return key in self._entries

    async def get(self, key: CacheKey) -> Optional[Any]:
        # callers get their own copy; stored values never change after set
        return copy.deepcopy(self._entries.get(key))

    async def set(self, key: CacheKey, value: Any) -> None:
        if value is None:
            raise ValueError("Cache values cannot be None")
        self._entries[key] = copy.deepcopy(value)
        self._report_size()

    async def delete_many(self, keys: Iterable[CacheKey]) -> int:
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        self._report_size()
        return removed

    def _report_size(self):
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(self._entries))


class RedisCacheStore(CacheStore):
    """Redis-backed cache store; values cross the boundary as JSON."""

    def __init__(self, redis_url: str, key_prefix: str = "storefront", client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.logger = get_logger("storefront.cache.redis")
        self.redis: Optional[redis.Redis] = client
        self._adapters = {kind: TypeAdapter(value_type) for kind, value_type in VALUE_TYPES.items()}

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30
                )

            await self.redis.ping()

            self.logger.info("Redis cache started", key_prefix=self.key_prefix)

        except (redis.RedisError, OSError) as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise ServiceError("Cache store unavailable", {"error": str(e)}) from e

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (redis.RedisError, OSError):
            return False

    def _redis_key(self, key: CacheKey) -> str:
        return f"{self.key_prefix}:{key.render()}"

    async def has(self, key: CacheKey) -> bool:
        return await self.redis.exists(self._redis_key(key)) > 0

    async def get(self, key: CacheKey) -> Optional[Any]:
        payload = await self.redis.get(self._redis_key(key))
        if payload is None:
            return None

        try:
            return self._adapters[key.kind].validate_json(payload)
        except PydanticValidationError as e:
            self.logger.error("Corrupt cache payload", cache_key=key.render(), error=str(e))
            raise CacheSerializationError(key.render(), details={"error": str(e)}) from e

    async def set(self, key: CacheKey, value: Any) -> None:
        if value is None:
            raise ValueError("Cache values cannot be None")
        payload = self._adapters[key.kind].dump_json(value, by_alias=True)
        await self.redis.set(self._redis_key(key), payload.decode("utf-8"))

    async def delete_many(self, keys: Iterable[CacheKey]) -> int:
        names = [self._redis_key(key) for key in keys]
        if not names:
            return 0
        return await self.redis.delete(*names)


def build_cache_store(config: BaseConfig, metrics: Optional[MetricsCollector] = None) -> CacheStore:
    """Create the cache store selected by ``cache_backend``."""
    if config.cache_backend == "redis":
        return RedisCacheStore(config.redis_url, config.redis_key_prefix)
    return InMemoryCacheStore(metrics)
