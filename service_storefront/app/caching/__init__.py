"""
Read-through cache package.

Cached views are addressed by typed (kind, scope) keys and purged by
fixed invalidation groups: product, order and admin. The in-memory store
is the default; the Redis store serializes values as JSON.
"""

from .invalidation import CacheInvalidator, InvalidationRequest, keys_for
from .keys import CacheKey, CacheKind
from .read_through import ReadThroughCache, StorefrontReads
from .store import CacheStore, InMemoryCacheStore, RedisCacheStore, build_cache_store

__all__ = [
    "CacheInvalidator",
    "CacheKey",
    "CacheKind",
    "CacheStore",
    "InMemoryCacheStore",
    "InvalidationRequest",
    "ReadThroughCache",
    "RedisCacheStore",
    "StorefrontReads",
    "build_cache_store",
    "keys_for",
]
