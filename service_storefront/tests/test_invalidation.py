"""
Unit tests for cache invalidation.
"""

import pytest

from service_storefront.app.caching.invalidation import (
    ADMIN_KEYS,
    PRODUCT_KEYS,
    CacheInvalidator,
    InvalidationRequest,
    keys_for,
)
from service_storefront.app.caching.keys import (
    ADMIN_STATS,
    ALL_ORDERS,
    CATEGORIES,
    LATEST_PRODUCTS,
    CacheKind,
    my_orders_key,
    order_key,
    product_key,
)


def rendered(keys):
    return sorted(key.render() for key in keys)


class TestKeysFor:
    """Test cases for the invalidation key tables."""

    @pytest.mark.parametrize("order,admin,user_id,product_id", [
        (False, False, None, None),
        (True, False, "user1", None),
        (False, True, None, "p1"),
        (True, True, "user1", ["p1", "p2"]),
    ])
    def test_product_flag_always_purges_listings(self, order, admin, user_id, product_id):
        """Product listings are purged whatever else is requested."""
        request = InvalidationRequest(
            product=True, order=order, admin=admin, user_id=user_id, product_id=product_id
        )

        assert set(PRODUCT_KEYS) <= keys_for(request)

    def test_product_keys(self):
        """The product group names the three listing keys."""
        assert rendered(keys_for(InvalidationRequest(product=True))) == [
            "admin-products",
            "categories",
            "latest-products",
        ]

    def test_product_id_list_scoping(self):
        """Every listed product id gets its detail key purged, and no others."""
        keys = keys_for(InvalidationRequest(product=True, product_id=["a", "b"]))
        product_keys = {key for key in keys if key.kind == CacheKind.PRODUCT}

        assert product_keys == {product_key("a"), product_key("b")}

    def test_single_product_id(self):
        """A single id is accepted as well as a list."""
        keys = keys_for(InvalidationRequest(product=True, product_id="a"))

        assert product_key("a") in keys
        assert len(keys) == 4

    def test_product_id_ignored_without_flag(self):
        """Scoping ids do nothing unless their group is flagged."""
        keys = keys_for(InvalidationRequest(admin=True, product_id="a", user_id="user1"))

        assert keys == set(ADMIN_KEYS)

    def test_order_keys(self):
        """The order group purges all orders and the scoped order keys."""
        keys = keys_for(InvalidationRequest(order=True, user_id="user1", order_id="o1"))

        assert keys == {ALL_ORDERS, my_orders_key("user1"), order_key("o1")}

    def test_order_keys_without_ids(self):
        """Missing ids produce keys with an empty scope."""
        assert rendered(keys_for(InvalidationRequest(order=True))) == [
            "all-orders",
            "my-orders-",
            "order-",
        ]

    def test_admin_keys(self):
        """The admin group purges all four dashboard views."""
        assert rendered(keys_for(InvalidationRequest(admin=True))) == [
            "admin-bar-charts",
            "admin-line-charts",
            "admin-pie-charts",
            "admin-stats",
        ]

    def test_groups_are_independent(self):
        """Flags combine as a union and do not imply each other."""
        order_only = keys_for(InvalidationRequest(order=True, user_id="user1"))

        assert not set(PRODUCT_KEYS) & order_only
        assert not set(ADMIN_KEYS) & order_only

        combined = keys_for(InvalidationRequest(product=True, order=True, admin=True, user_id="user1"))
        assert combined == set(PRODUCT_KEYS) | order_only | set(ADMIN_KEYS)

    def test_no_flags(self):
        """A request with no flags purges nothing."""
        assert keys_for(InvalidationRequest(user_id="user1", product_id="p1")) == set()


class TestCacheInvalidator:
    """Test cases for CacheInvalidator."""

    @pytest.fixture
    def invalidator(self, cache_store, metrics):
        """Invalidator over the in-memory store."""
        return CacheInvalidator(cache_store, metrics)

    @pytest.mark.asyncio
    async def test_invalidate_removes_only_named_keys(self, invalidator, cache_store):
        """Keys outside the requested groups survive."""
        await cache_store.set(CATEGORIES, ["books"])
        await cache_store.set(LATEST_PRODUCTS, [])
        await cache_store.set(my_orders_key("user1"), [])
        await cache_store.set(my_orders_key("user2"), [])
        await cache_store.set(ADMIN_STATS, {"stale": True})

        purged = await invalidator.invalidate(InvalidationRequest(order=True, admin=True, user_id="user1"))

        assert my_orders_key("user1") in purged
        assert set(cache_store.keys()) == {CATEGORIES, LATEST_PRODUCTS, my_orders_key("user2")}

    @pytest.mark.asyncio
    async def test_invalidate_absent_keys(self, invalidator, cache_store):
        """Purging keys that are not cached is not an error."""
        purged = await invalidator.invalidate(InvalidationRequest(product=True, admin=True, product_id="p1"))

        assert len(purged) == 8
        assert len(cache_store) == 0

    @pytest.mark.asyncio
    async def test_invalidate_nothing(self, invalidator, cache_store, metrics):
        """An empty request does not touch the store."""
        await cache_store.set(CATEGORIES, ["books"])

        assert await invalidator.invalidate(InvalidationRequest()) == set()
        assert await cache_store.has(CATEGORIES)
        assert metrics.registry.get_sample_value("cache_keys_purged_total") == 0

    @pytest.mark.asyncio
    async def test_invalidation_metrics(self, invalidator, metrics):
        """Each flagged group and every purged key is counted."""
        await invalidator.invalidate(InvalidationRequest(product=True, admin=True, product_id=["a", "b"]))

        registry = metrics.registry
        assert registry.get_sample_value("cache_invalidations_total", {"group": "product"}) == 1
        assert registry.get_sample_value("cache_invalidations_total", {"group": "admin"}) == 1
        assert registry.get_sample_value("cache_invalidations_total", {"group": "order"}) is None
        assert registry.get_sample_value("cache_keys_purged_total") == 9
