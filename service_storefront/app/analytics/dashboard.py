"""
Admin dashboard aggregates.

Every builder reads straight from the document store; caching happens one
layer up in the read-through accessors.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, Iterable

from pydantic import TypeAdapter

from shared.config import BaseConfig
from shared.logging import get_logger
from ..models import (
    BarCharts,
    Collection,
    Counts,
    DashboardStats,
    Gender,
    LatestTransaction,
    LineCharts,
    OrderStatus,
    Percentages,
    PieCharts,
    RevenueDistribution,
    UserRole,
    age_on,
    utcnow,
)
from ..persistence.documents import DocumentStore
from .charts import (
    calculate_percentage,
    get_chart_data,
    last_month_range,
    round_half_up,
    shift_months,
    this_month_range,
    window_filter,
)
from .inventory import get_inventories

logger = get_logger("storefront.analytics.dashboard")

_DATETIME = TypeAdapter(datetime)


def _total(docs: Iterable[Dict[str, Any]], field: str):
    return sum(doc.get(field) or 0 for doc in docs)


class DashboardBuilder:
    """Computes the four admin dashboard views."""

    def __init__(
        self,
        store: DocumentStore,
        config: BaseConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config
        self.clock = clock

    async def stats(self) -> DashboardStats:
        today = self.clock()
        six_months_ago = shift_months(today, -6)
        this_month = window_filter(*this_month_range(today))
        last_month = window_filter(*last_month_range(today))
        find = self.store.find

        (
            this_month_products,
            this_month_users,
            this_month_orders,
            last_month_products,
            last_month_users,
            last_month_orders,
            products_count,
            users_count,
            all_orders,
            last_six_month_orders,
            categories,
            male_users_count,
            latest_transactions,
        ) = await asyncio.gather(
            find(Collection.PRODUCTS, this_month, projection=["created_at"]),
            find(Collection.USERS, this_month, projection=["created_at"]),
            find(Collection.ORDERS, this_month, projection=["total_amount"]),
            find(Collection.PRODUCTS, last_month, projection=["created_at"]),
            find(Collection.USERS, last_month, projection=["created_at"]),
            find(Collection.ORDERS, last_month, projection=["total_amount"]),
            self.store.count(Collection.PRODUCTS),
            self.store.count(Collection.USERS),
            find(Collection.ORDERS, projection=["total_amount"]),
            find(Collection.ORDERS, window_filter(six_months_ago, today), projection=["total_amount"]),
            self.store.distinct(Collection.PRODUCTS, "category"),
            self.store.count(Collection.USERS, {"gender": Gender.MALE.value}),
            find(
                Collection.ORDERS,
                projection=["order_items", "discount", "total_amount", "status"],
                sort={"created_at": -1},
                limit=self.config.latest_transactions_limit,
            ),
        )

        percentages = Percentages(
            revenue=calculate_percentage(
                _total(this_month_orders, "total_amount"),
                _total(last_month_orders, "total_amount"),
            ),
            products=calculate_percentage(len(this_month_products), len(last_month_products)),
            users=calculate_percentage(len(this_month_users), len(last_month_users)),
            orders=calculate_percentage(len(this_month_orders), len(last_month_orders)),
        )

        count = Counts(
            products=products_count,
            users=users_count,
            orders=len(all_orders),
            revenue=_total(all_orders, "total_amount"),
        )

        transactions = [
            LatestTransaction(
                _id=order["_id"],
                discount=order.get("discount") or 0,
                amount=order.get("total_amount") or 0,
                quantity=len(order.get("order_items") or []),
                status=order["status"],
            )
            for order in latest_transactions
        ]

        logger.debug("Dashboard stats computed", products=products_count, users=users_count)

        return DashboardStats(
            category_count=await get_inventories(self.store, categories, products_count),
            percentages=percentages,
            count=count,
            chart={
                "order": get_chart_data(6, last_six_month_orders, today),
                "revenue": get_chart_data(6, last_six_month_orders, today, "total_amount"),
            },
            user_ratio={"male": male_users_count, "female": users_count - male_users_count},
            latest_transactions=transactions,
        )

    async def pie_charts(self) -> PieCharts:
        today = self.clock()

        (
            processing_orders,
            shipped_orders,
            delivered_orders,
            categories,
            products_count,
            out_of_stock_products,
            all_orders,
            all_users,
            admin_users,
            customer_users,
        ) = await asyncio.gather(
            self.store.count(Collection.ORDERS, {"status": OrderStatus.PROCESSING.value}),
            self.store.count(Collection.ORDERS, {"status": OrderStatus.SHIPPED.value}),
            self.store.count(Collection.ORDERS, {"status": OrderStatus.DELIVERED.value}),
            self.store.distinct(Collection.PRODUCTS, "category"),
            self.store.count(Collection.PRODUCTS),
            self.store.count(Collection.PRODUCTS, {"stock": 0}),
            self.store.find(
                Collection.ORDERS,
                projection=["total_amount", "tax", "shipping_charges", "discount", "subtotal"],
            ),
            self.store.find(Collection.USERS, projection=["dob"]),
            self.store.count(Collection.USERS, {"role": UserRole.ADMIN.value}),
            self.store.count(Collection.USERS, {"role": UserRole.USER.value}),
        )

        gross_income = _total(all_orders, "total_amount")
        discount = _total(all_orders, "discount")
        production_cost = _total(all_orders, "shipping_charges")
        burnt = _total(all_orders, "tax")
        marketing_cost = round_half_up(gross_income * self.config.marketing_cost_ratio)

        ages = [age_on(_DATETIME.validate_python(user["dob"]), today.date()) for user in all_users]

        return PieCharts(
            order_fulfillment={
                "processing": processing_orders,
                "shipped": shipped_orders,
                "delivered": delivered_orders,
            },
            product_categories=await get_inventories(self.store, categories, products_count),
            stock_availability={
                "in_stock": products_count - out_of_stock_products,
                "out_of_stock": out_of_stock_products,
            },
            revenue_distribution=RevenueDistribution(
                net_margin=gross_income - discount - production_cost - burnt - marketing_cost,
                discount=discount,
                production_cost=production_cost,
                burnt=burnt,
                marketing_cost=marketing_cost,
            ),
            users_age_group={
                "teen": sum(1 for age in ages if age < 20),
                "adult": sum(1 for age in ages if 20 <= age < 40),
                "old": sum(1 for age in ages if age >= 40),
            },
            admin_customers={"admin": admin_users, "customer": customer_users},
        )

    async def bar_charts(self) -> BarCharts:
        today = self.clock()
        six_months = window_filter(shift_months(today, -6), today)
        twelve_months = window_filter(shift_months(today, -12), today)

        products, users, orders = await asyncio.gather(
            self.store.find(Collection.PRODUCTS, six_months, projection=["created_at"]),
            self.store.find(Collection.USERS, six_months, projection=["created_at"]),
            self.store.find(Collection.ORDERS, twelve_months, projection=["created_at"]),
        )

        return BarCharts(
            users=get_chart_data(6, users, today),
            products=get_chart_data(6, products, today),
            orders=get_chart_data(12, orders, today),
        )

    async def line_charts(self) -> LineCharts:
        today = self.clock()
        twelve_months = window_filter(shift_months(today, -12), today)

        products, users, orders = await asyncio.gather(
            self.store.find(Collection.PRODUCTS, twelve_months, projection=["created_at"]),
            self.store.find(Collection.USERS, twelve_months, projection=["created_at"]),
            self.store.find(
                Collection.ORDERS,
                twelve_months,
                projection=["created_at", "discount", "total_amount"],
            ),
        )

        return LineCharts(
            users=get_chart_data(12, users, today),
            products=get_chart_data(12, products, today),
            discount=get_chart_data(12, orders, today, "discount"),
            revenue=get_chart_data(12, orders, today, "total_amount"),
        )
