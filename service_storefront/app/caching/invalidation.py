"""
Cache invalidation for Storefront mutations.

Each mutation names the groups of cached views it made stale. The keys per
group are fixed tables; the only computed part is the scope of the per-entity
keys.
"""

from typing import List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .keys import (
    ADMIN_BAR_CHARTS,
    ADMIN_LINE_CHARTS,
    ADMIN_PIE_CHARTS,
    ADMIN_PRODUCTS,
    ADMIN_STATS,
    ALL_ORDERS,
    CATEGORIES,
    LATEST_PRODUCTS,
    CacheKey,
    my_orders_key,
    order_key,
    product_key,
)
from .store import CacheStore

PRODUCT_KEYS: Tuple[CacheKey, ...] = (LATEST_PRODUCTS, CATEGORIES, ADMIN_PRODUCTS)
ORDER_KEYS: Tuple[CacheKey, ...] = (ALL_ORDERS,)
ADMIN_KEYS: Tuple[CacheKey, ...] = (
    ADMIN_STATS,
    ADMIN_PIE_CHARTS,
    ADMIN_BAR_CHARTS,
    ADMIN_LINE_CHARTS,
)


class InvalidationRequest(BaseModel):
    """Groups of cached data made stale by a mutation.

    Writers set ``admin`` whenever ``product`` or ``order`` is set, since the
    dashboards aggregate over both.
    """

    model_config = ConfigDict(frozen=True)

    product: bool = False
    order: bool = False
    admin: bool = False
    user_id: Optional[str] = None
    order_id: Optional[str] = None
    product_id: Union[str, List[str], None] = None

    def product_ids(self) -> List[str]:
        if self.product_id is None:
            return []
        if isinstance(self.product_id, str):
            return [self.product_id]
        return list(self.product_id)

    def groups(self) -> List[str]:
        return [name for name in ("product", "order", "admin") if getattr(self, name)]


def keys_for(request: InvalidationRequest) -> Set[CacheKey]:
    """Exact set of keys a request purges."""
    keys: Set[CacheKey] = set()

    if request.product:
        keys.update(PRODUCT_KEYS)
        keys.update(product_key(product_id) for product_id in request.product_ids())

    if request.order:
        keys.update(ORDER_KEYS)
        keys.add(my_orders_key(request.user_id))
        keys.add(order_key(request.order_id))

    if request.admin:
        keys.update(ADMIN_KEYS)

    return keys


class CacheInvalidator:
    """Purges the keys an InvalidationRequest names from a cache store."""

    def __init__(self, store: CacheStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("storefront.cache.invalidation")

    async def invalidate(self, request: InvalidationRequest) -> Set[CacheKey]:
        keys = keys_for(request)
        if not keys:
            return keys

        removed = await self.store.delete_many(keys)

        if self.metrics:
            for group in request.groups():
                self.metrics.increment_counter("cache_invalidations_total", group=group)
            self.metrics.increment_counter("cache_keys_purged_total", len(keys))

        self.logger.info(
            "Cache invalidated",
            groups=request.groups(),
            keys=sorted(key.render() for key in keys),
            removed=removed,
        )
        return keys
