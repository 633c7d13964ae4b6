"""
Unit tests for the admin dashboard aggregates.
"""

from datetime import datetime, timezone

import pytest

from shared.test_helpers import TestDataFactory
from service_storefront.app.analytics.dashboard import DashboardBuilder
from service_storefront.app.models import Collection
from service_storefront.app.persistence.memory import InMemoryDocumentStore

TODAY = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def at(month, day, year=2024):
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def store():
    """A small shop spanning January to June 2024."""
    store = InMemoryDocumentStore()
    store.seed(Collection.PRODUCTS, [
        TestDataFactory.create_product("p1", category="electronics", created_at=at(6, 1)),
        TestDataFactory.create_product("p2", category="electronics", created_at=at(6, 2), stock=0),
        TestDataFactory.create_product("p3", name="Novel", category="books", created_at=at(6, 3)),
        TestDataFactory.create_product("p4", name="Atlas", category="books", created_at=at(5, 10)),
    ])
    store.seed(Collection.USERS, [
        TestDataFactory.create_admin(created_at=at(6, 1), dob=datetime(1990, 1, 1, tzinfo=timezone.utc)),
        TestDataFactory.create_user(
            "user1", gender="female", created_at=at(5, 10), dob=datetime(2010, 1, 1, tzinfo=timezone.utc)
        ),
        TestDataFactory.create_user(
            "user2", created_at=at(6, 5), dob=datetime(1970, 6, 15, tzinfo=timezone.utc)
        ),
    ])
    store.seed(Collection.ORDERS, [
        TestDataFactory.create_order(
            "o1",
            items=[TestDataFactory.create_order_item("p1"), TestDataFactory.create_order_item("p3")],
            total_amount=1000,
            discount=100,
            tax=50,
            shipping_charges=20,
            created_at=at(6, 10),
        ),
        TestDataFactory.create_order(
            "o2",
            items=[TestDataFactory.create_order_item("p4")],
            total_amount=500,
            status="Shipped",
            created_at=at(5, 20),
        ),
        TestDataFactory.create_order(
            "o3",
            user="user1",
            items=[TestDataFactory.create_order_item("p2")],
            total_amount=300,
            discount=30,
            status="Delivered",
            created_at=at(1, 20),
        ),
    ])
    return store


@pytest.fixture
def builder(store, config):
    """Dashboard builder with a fixed clock."""
    return DashboardBuilder(store, config, clock=lambda: TODAY)


class TestDashboardStats:
    """Test cases for the stats view."""

    @pytest.mark.asyncio
    async def test_percentages(self, builder):
        """Month-over-month growth compares June against May."""
        stats = await builder.stats()

        assert stats.percentages.revenue == 200
        assert stats.percentages.products == 300
        assert stats.percentages.users == 200
        assert stats.percentages.orders == 100

    @pytest.mark.asyncio
    async def test_counts(self, builder):
        """Totals cover every document."""
        stats = await builder.stats()

        assert stats.count.products == 4
        assert stats.count.users == 3
        assert stats.count.orders == 3
        assert stats.count.revenue == 1800

    @pytest.mark.asyncio
    async def test_six_month_chart(self, builder):
        """Order count and revenue are bucketed over six months."""
        stats = await builder.stats()

        assert stats.chart["order"] == [1, 0, 0, 0, 1, 1]
        assert stats.chart["revenue"] == [300, 0, 0, 0, 500, 1000]

    @pytest.mark.asyncio
    async def test_ratios(self, builder):
        """Category share and gender ratio."""
        stats = await builder.stats()

        assert stats.category_count == [{"books": 50}, {"electronics": 50}]
        assert stats.user_ratio == {"male": 2, "female": 1}

    @pytest.mark.asyncio
    async def test_latest_transactions(self, builder):
        """Latest transactions are newest first with item counts."""
        stats = await builder.stats()

        assert [t.id for t in stats.latest_transactions] == ["o1", "o2", "o3"]
        first = stats.latest_transactions[0]
        assert first.quantity == 2
        assert first.amount == 1000
        assert first.discount == 100
        assert first.status.value == "Processing"

    @pytest.mark.asyncio
    async def test_latest_transactions_limit(self, store, config):
        """The number of transactions follows configuration."""
        limited = DashboardBuilder(
            store, config.model_copy(update={"latest_transactions_limit": 2}), clock=lambda: TODAY
        )

        stats = await limited.stats()

        assert len(stats.latest_transactions) == 2

    @pytest.mark.asyncio
    async def test_empty_shop(self, config):
        """An empty database yields zeroed stats without dividing by zero."""
        stats = await DashboardBuilder(InMemoryDocumentStore(), config, clock=lambda: TODAY).stats()

        assert stats.percentages.revenue == 0
        assert stats.count.products == 0
        assert stats.category_count == []
        assert stats.chart["order"] == [0] * 6


class TestDashboardCharts:
    """Test cases for the pie, bar and line views."""

    @pytest.mark.asyncio
    async def test_pie_charts(self, builder):
        """Pie view counts statuses, stock, revenue split, ages and roles."""
        charts = await builder.pie_charts()

        assert charts.order_fulfillment == {"processing": 1, "shipped": 1, "delivered": 1}
        assert charts.product_categories == [{"books": 50}, {"electronics": 50}]
        assert charts.stock_availability == {"in_stock": 3, "out_of_stock": 1}
        assert charts.users_age_group == {"teen": 1, "adult": 1, "old": 1}
        assert charts.admin_customers == {"admin": 1, "customer": 2}

    @pytest.mark.asyncio
    async def test_revenue_distribution(self, builder):
        """Marketing takes 30% of gross; the rest is net margin."""
        distribution = (await builder.pie_charts()).revenue_distribution

        assert distribution.discount == 130
        assert distribution.production_cost == 20
        assert distribution.burnt == 50
        assert distribution.marketing_cost == 540
        assert distribution.net_margin == 1060

    @pytest.mark.asyncio
    async def test_bar_charts(self, builder):
        """Products and users over six months, orders over twelve."""
        charts = await builder.bar_charts()

        assert charts.products == [0, 0, 0, 0, 1, 3]
        assert charts.users == [0, 0, 0, 0, 1, 2]
        assert charts.orders == [0, 0, 0, 0, 0, 0, 1, 0, 0, 0, 1, 1]

    @pytest.mark.asyncio
    async def test_line_charts(self, builder):
        """Twelve-month counts and order sums."""
        charts = await builder.line_charts()

        assert charts.products == [0] * 10 + [1, 3]
        assert charts.users == [0] * 10 + [1, 2]
        assert charts.discount == [0, 0, 0, 0, 0, 0, 30, 0, 0, 0, 0, 100]
        assert charts.revenue == [0, 0, 0, 0, 0, 0, 300, 0, 0, 0, 500, 1000]
