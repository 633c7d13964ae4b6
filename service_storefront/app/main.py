"""
Storefront service: users, products, orders, coupons and the admin dashboard.
"""

from typing import Optional

from fastapi import Depends, Query, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ValidationError
from shared.logging import set_user_context

from .caching.invalidation import CacheInvalidator
from .caching.read_through import ReadThroughCache, StorefrontReads
from .caching.store import CacheStore, build_cache_store
from .models import (
    NewCouponRequest,
    NewOrderRequest,
    NewProductRequest,
    NewUserRequest,
    UpdateProductRequest,
    User,
)
from .persistence import DocumentStore, build_document_store
from .services.coupons import CouponService
from .services.orders import OrderService
from .services.products import ProductService
from .services.users import UserService

API_PREFIX = "/api/v1"


class StorefrontService(BaseService):
    """Storefront service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        documents: Optional[DocumentStore] = None,
        cache_store: Optional[CacheStore] = None,
    ):
        super().__init__("storefront", 8000, config)

        self.documents = documents if documents is not None else build_document_store(self.config)
        self.cache_store = cache_store if cache_store is not None else build_cache_store(self.config, self.metrics)
        self.invalidator = CacheInvalidator(self.cache_store, self.metrics)
        self.reads = StorefrontReads(
            self.documents,
            ReadThroughCache(self.cache_store, self.metrics),
            self.config,
        )

        self.users = UserService(self.documents, self.invalidator)
        self.products = ProductService(self.documents, self.invalidator, self.config)
        self.orders = OrderService(self.documents, self.invalidator)
        self.coupons = CouponService(self.documents)

        self._setup_storefront_routes()

    def _setup_storefront_routes(self):
        """Set up storefront routes."""

        async def admin_only(id: Optional[str] = Query(None)) -> User:
            admin = await self.users.require_admin(id)
            set_user_context(admin.id)
            return admin

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "storefront",
                "message": f"API Working with {API_PREFIX}",
                "version": "1.0.0",
            }

        # Users

        @self.app.post(f"{API_PREFIX}/users/new")
        async def new_user(request: NewUserRequest, response: Response):
            created, user = await self.users.create_user(request)
            if not created:
                return {"success": True, "message": f"Welcome back, {user.name}"}

            self.metrics.record_business_event("user_created")
            response.status_code = 201
            return {"success": True, "message": f"Welcome, {user.name}"}

        @self.app.get(f"{API_PREFIX}/users/all")
        async def all_users(admin: User = Depends(admin_only)):
            return {"success": True, "users": await self.users.list_users()}

        @self.app.get(f"{API_PREFIX}/users/{{user_id}}")
        async def get_user(user_id: str, admin: User = Depends(admin_only)):
            return {"success": True, "user": await self.users.get_user(user_id)}

        @self.app.delete(f"{API_PREFIX}/users/{{user_id}}")
        async def delete_user(user_id: str, admin: User = Depends(admin_only)):
            await self.users.delete_user(user_id)
            return {"success": True, "message": "User Deleted Successfully"}

        # Products

        @self.app.post(f"{API_PREFIX}/products/new", status_code=201)
        async def new_product(request: NewProductRequest, admin: User = Depends(admin_only)):
            product = await self.products.create_product(request)
            self.metrics.record_business_event("product_created")
            return {"success": True, "message": "Product created successfully", "product": product}

        @self.app.get(f"{API_PREFIX}/products/all")
        async def search_products(
            search: Optional[str] = None,
            category: Optional[str] = None,
            price: Optional[float] = None,
            sort: Optional[str] = None,
            page: int = 1,
        ):
            result = await self.products.search_products(search, category, price, sort, page)
            return {"success": True, "products": result.products, "total_pages": result.total_pages}

        @self.app.get(f"{API_PREFIX}/products/latest")
        async def latest_products():
            return {"success": True, "products": await self.reads.latest_products()}

        @self.app.get(f"{API_PREFIX}/products/categories")
        async def categories():
            return {"success": True, "categories": await self.reads.categories()}

        @self.app.get(f"{API_PREFIX}/products/admin-products")
        async def admin_products(admin: User = Depends(admin_only)):
            return {"success": True, "products": await self.reads.admin_products()}

        @self.app.get(f"{API_PREFIX}/products/{{product_id}}")
        async def get_product(product_id: str):
            return {"success": True, "product": await self.reads.product(product_id)}

        @self.app.put(f"{API_PREFIX}/products/{{product_id}}")
        async def update_product(product_id: str, request: UpdateProductRequest, admin: User = Depends(admin_only)):
            await self.products.update_product(product_id, request)
            return {"success": True, "message": "Product updated successfully"}

        @self.app.delete(f"{API_PREFIX}/products/{{product_id}}")
        async def delete_product(product_id: str, admin: User = Depends(admin_only)):
            await self.products.delete_product(product_id)
            return {"success": True, "message": "Product Deleted Successfully"}

        # Orders

        @self.app.post(f"{API_PREFIX}/orders/new", status_code=201)
        async def new_order(request: NewOrderRequest):
            order = await self.orders.create_order(request)
            self.metrics.record_business_event("order_placed")
            return {"success": True, "message": "Order Placed Successfully", "order_id": order.id}

        @self.app.get(f"{API_PREFIX}/orders/my")
        async def my_orders(id: Optional[str] = Query(None)):
            return {"success": True, "orders": await self.reads.my_orders(id)}

        @self.app.get(f"{API_PREFIX}/orders/all")
        async def all_orders(admin: User = Depends(admin_only)):
            return {"success": True, "orders": await self.reads.all_orders()}

        @self.app.get(f"{API_PREFIX}/orders/{{order_id}}")
        async def get_order(order_id: str):
            return {"success": True, "order": await self.reads.order(order_id)}

        @self.app.put(f"{API_PREFIX}/orders/{{order_id}}")
        async def process_order(order_id: str, admin: User = Depends(admin_only)):
            await self.orders.process_order(order_id)
            return {"success": True, "message": "Order Processed Successfully"}

        @self.app.delete(f"{API_PREFIX}/orders/{{order_id}}")
        async def delete_order(order_id: str, admin: User = Depends(admin_only)):
            await self.orders.delete_order(order_id)
            return {"success": True, "message": "Order Deleted Successfully"}

        # Payments

        @self.app.post(f"{API_PREFIX}/payments/coupon/new", status_code=201)
        async def new_coupon(request: NewCouponRequest, admin: User = Depends(admin_only)):
            coupon = await self.coupons.create_coupon(request)
            return {"success": True, "message": f"Coupon {coupon.code} Created Successfully"}

        @self.app.get(f"{API_PREFIX}/payments/discount")
        async def apply_discount(coupon: Optional[str] = None):
            if not coupon:
                raise ValidationError("Invalid Coupon Code")
            return {"success": True, "discount": await self.coupons.apply_discount(coupon)}

        @self.app.get(f"{API_PREFIX}/payments/coupon/all")
        async def all_coupons(admin: User = Depends(admin_only)):
            return {"success": True, "coupons": await self.coupons.list_coupons()}

        @self.app.delete(f"{API_PREFIX}/payments/coupon/{{coupon_id}}")
        async def delete_coupon(coupon_id: str, admin: User = Depends(admin_only)):
            await self.coupons.delete_coupon(coupon_id)
            return {"success": True, "message": "Coupon Deleted Successfully"}

        # Dashboard

        @self.app.get(f"{API_PREFIX}/dashboard/stats")
        async def dashboard_stats(admin: User = Depends(admin_only)):
            return {"success": True, "stats": await self.reads.dashboard_stats()}

        @self.app.get(f"{API_PREFIX}/dashboard/pie")
        async def pie_charts(admin: User = Depends(admin_only)):
            return {"success": True, "charts": await self.reads.pie_charts()}

        @self.app.get(f"{API_PREFIX}/dashboard/bar")
        async def bar_charts(admin: User = Depends(admin_only)):
            return {"success": True, "charts": await self.reads.bar_charts()}

        @self.app.get(f"{API_PREFIX}/dashboard/line")
        async def line_charts(admin: User = Depends(admin_only)):
            return {"success": True, "charts": await self.reads.line_charts()}

    async def _check_dependencies(self):
        """Check storefront service dependencies."""
        dependencies = {}

        dependencies["documents"] = "ok" if await self.documents.health_check() else "error"
        dependencies["cache"] = "ok" if await self.cache_store.health_check() else "error"

        return dependencies

    async def start(self):
        """Start storefront service components."""
        await self.documents.start()
        await self.cache_store.start()

        self.logger.info("Storefront service started", cache_backend=type(self.cache_store).__name__)

    async def stop(self):
        """Stop storefront service components."""
        await self.cache_store.stop()
        await self.documents.stop()

        self.logger.info("Storefront service stopped")


def create_app():
    """Create storefront service application."""
    service = StorefrontService()
    return service.app


if __name__ == "__main__":
    service = StorefrontService()
    service.run()
