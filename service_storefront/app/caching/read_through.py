"""
Read-through accessors for the Storefront service.

Every cached read goes through ``ReadThroughCache.fetch``: look the key up,
and on a miss run the loader, store its result and return it. Concurrent
misses for one key may both load; the last write wins.
"""

import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from shared.config import BaseConfig
from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..analytics.dashboard import DashboardBuilder
from ..models import (
    BarCharts,
    Collection,
    DashboardStats,
    LineCharts,
    Order,
    OrderView,
    PieCharts,
    Product,
)
from ..persistence.documents import DocumentStore
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

T = TypeVar("T")


class ReadThroughCache:
    """Populate-on-miss wrapper around a cache store."""

    def __init__(self, store: CacheStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("storefront.cache.read_through")

    async def fetch(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        cached = await self.store.get(key)
        if cached is not None:
            self._count("cache_hits_total", key)
            self.logger.debug("Cache hit", cache_key=key.render())
            return cached

        self._count("cache_misses_total", key)
        start_time = time.perf_counter()

        value = await loader()
        await self.store.set(key, value)

        duration = time.perf_counter() - start_time
        if self.metrics:
            self.metrics.observe_histogram("cache_load_duration_seconds", duration, cache_kind=key.kind.value)
        self.logger.debug("Cache miss", cache_key=key.render(), load_ms=round(duration * 1000, 2))
        return value

    def _count(self, metric_name: str, key: CacheKey):
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_kind=key.kind.value)


class StorefrontReads:
    """Cached views over the document store."""

    def __init__(
        self,
        documents: DocumentStore,
        cache: ReadThroughCache,
        config: BaseConfig,
        dashboard: Optional[DashboardBuilder] = None,
    ):
        self.documents = documents
        self.cache = cache
        self.config = config
        self.dashboard = dashboard or DashboardBuilder(documents, config)

    # Products

    async def latest_products(self) -> List[Product]:
        async def load():
            docs = await self.documents.find(
                Collection.PRODUCTS,
                sort={"created_at": -1},
                limit=self.config.latest_products_limit,
            )
            return [Product.model_validate(doc) for doc in docs]

        return await self.cache.fetch(LATEST_PRODUCTS, load)

    async def categories(self) -> List[str]:
        async def load():
            return list(await self.documents.distinct(Collection.PRODUCTS, "category"))

        return await self.cache.fetch(CATEGORIES, load)

    async def admin_products(self) -> List[Product]:
        async def load():
            docs = await self.documents.find(Collection.PRODUCTS)
            return [Product.model_validate(doc) for doc in docs]

        return await self.cache.fetch(ADMIN_PRODUCTS, load)

    async def product(self, product_id: str) -> Product:
        async def load():
            doc = await self.documents.find_by_id(Collection.PRODUCTS, product_id)
            if doc is None:
                raise NotFoundError("Product not found", {"product_id": product_id})
            return Product.model_validate(doc)

        return await self.cache.fetch(product_key(product_id), load)

    # Orders

    async def my_orders(self, user_id: Optional[str]) -> List[Order]:
        async def load():
            docs = await self.documents.find(Collection.ORDERS, {"user": user_id})
            return [Order.model_validate(doc) for doc in docs]

        return await self.cache.fetch(my_orders_key(user_id), load)

    async def all_orders(self) -> List[OrderView]:
        async def load():
            docs = await self.documents.find(Collection.ORDERS)
            names = await self._user_names({doc["user"] for doc in docs})
            return [OrderView.model_validate({**doc, "user_name": names.get(doc["user"])}) for doc in docs]

        return await self.cache.fetch(ALL_ORDERS, load)

    async def order(self, order_id: str) -> OrderView:
        async def load():
            doc = await self.documents.find_by_id(Collection.ORDERS, order_id)
            if doc is None:
                raise NotFoundError("Order not found", {"order_id": order_id})
            names = await self._user_names({doc["user"]})
            return OrderView.model_validate({**doc, "user_name": names.get(doc["user"])})

        return await self.cache.fetch(order_key(order_id), load)

    async def _user_names(self, user_ids) -> Dict[str, str]:
        if not user_ids:
            return {}
        users = await self.documents.find(
            Collection.USERS,
            {"_id": {"$in": sorted(user_ids)}},
            projection=["name"],
        )
        return {user["_id"]: user["name"] for user in users}

    # Dashboard

    async def dashboard_stats(self) -> DashboardStats:
        return await self.cache.fetch(ADMIN_STATS, self.dashboard.stats)

    async def pie_charts(self) -> PieCharts:
        return await self.cache.fetch(ADMIN_PIE_CHARTS, self.dashboard.pie_charts)

    async def bar_charts(self) -> BarCharts:
        return await self.cache.fetch(ADMIN_BAR_CHARTS, self.dashboard.bar_charts)

    async def line_charts(self) -> LineCharts:
        return await self.cache.fetch(ADMIN_LINE_CHARTS, self.dashboard.line_charts)
