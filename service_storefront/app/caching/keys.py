"""
Cache key naming for the Storefront read-through cache.

A key is a (kind, scope) pair. Fixed aggregate kinds carry no scope; scoped
kinds (per product, per user, per order) always render a scope segment, which
may be empty when the scoping id is unknown.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import (
    BarCharts,
    DashboardStats,
    LineCharts,
    Order,
    OrderView,
    PieCharts,
    Product,
)


class CacheKind(str, Enum):
    """Kinds of cached views."""
    LATEST_PRODUCTS = "latest-products"
    CATEGORIES = "categories"
    ADMIN_PRODUCTS = "admin-products"
    PRODUCT = "product"
    ALL_ORDERS = "all-orders"
    MY_ORDERS = "my-orders"
    ORDER = "order"
    ADMIN_STATS = "admin-stats"
    ADMIN_PIE_CHARTS = "admin-pie-charts"
    ADMIN_BAR_CHARTS = "admin-bar-charts"
    ADMIN_LINE_CHARTS = "admin-line-charts"


SCOPED_KINDS = frozenset({CacheKind.PRODUCT, CacheKind.MY_ORDERS, CacheKind.ORDER})


@dataclass(frozen=True)
class CacheKey:
    """Typed cache key."""

    kind: CacheKind
    scope: Optional[str] = None

    def __post_init__(self):
        if self.kind in SCOPED_KINDS:
            if self.scope is None:
                object.__setattr__(self, "scope", "")
            elif not isinstance(self.scope, str):
                object.__setattr__(self, "scope", str(self.scope))
        elif self.scope is not None:
            raise ValueError(f"Cache kind {self.kind.value} does not take a scope")

    def render(self) -> str:
        if self.kind in SCOPED_KINDS:
            return f"{self.kind.value}-{self.scope}"
        return self.kind.value

    def __str__(self) -> str:
        return self.render()


LATEST_PRODUCTS = CacheKey(CacheKind.LATEST_PRODUCTS)
CATEGORIES = CacheKey(CacheKind.CATEGORIES)
ADMIN_PRODUCTS = CacheKey(CacheKind.ADMIN_PRODUCTS)
ALL_ORDERS = CacheKey(CacheKind.ALL_ORDERS)
ADMIN_STATS = CacheKey(CacheKind.ADMIN_STATS)
ADMIN_PIE_CHARTS = CacheKey(CacheKind.ADMIN_PIE_CHARTS)
ADMIN_BAR_CHARTS = CacheKey(CacheKind.ADMIN_BAR_CHARTS)
ADMIN_LINE_CHARTS = CacheKey(CacheKind.ADMIN_LINE_CHARTS)


def product_key(product_id: Optional[str]) -> CacheKey:
    return CacheKey(CacheKind.PRODUCT, product_id)


def my_orders_key(user_id: Optional[str]) -> CacheKey:
    return CacheKey(CacheKind.MY_ORDERS, user_id)


def order_key(order_id: Optional[str]) -> CacheKey:
    return CacheKey(CacheKind.ORDER, order_id)


# Value type held under each kind; the Redis store validates payloads
# against these when reading them back.
VALUE_TYPES: Dict[CacheKind, Any] = {
    CacheKind.LATEST_PRODUCTS: List[Product],
    CacheKind.CATEGORIES: List[str],
    CacheKind.ADMIN_PRODUCTS: List[Product],
    CacheKind.PRODUCT: Product,
    CacheKind.ALL_ORDERS: List[OrderView],
    CacheKind.MY_ORDERS: List[Order],
    CacheKind.ORDER: OrderView,
    CacheKind.ADMIN_STATS: DashboardStats,
    CacheKind.ADMIN_PIE_CHARTS: PieCharts,
    CacheKind.ADMIN_BAR_CHARTS: BarCharts,
    CacheKind.ADMIN_LINE_CHARTS: LineCharts,
}
