"""
Order placement and fulfilment.
"""

from typing import List

from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from ..caching.invalidation import CacheInvalidator, InvalidationRequest
from ..models import Collection, NewOrderRequest, Order, OrderItem, OrderStatus, to_document
from ..persistence.documents import DocumentStore, new_document_id

logger = get_logger("storefront.services.orders")

REQUIRED_ORDER_FIELDS = ("shipping_info", "order_items", "user", "subtotal", "total_amount")

NEXT_STATUS = {
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}


class OrderService:
    """Places, processes and deletes orders."""

    def __init__(self, documents: DocumentStore, invalidator: CacheInvalidator):
        self.documents = documents
        self.invalidator = invalidator

    async def create_order(self, request: NewOrderRequest) -> Order:
        missing = [field for field in REQUIRED_ORDER_FIELDS if not getattr(request, field)]
        if missing:
            raise ValidationError("Please Enter All Fields", {"missing": missing})

        order = Order(
            _id=new_document_id(),
            shipping_info=request.shipping_info,
            user=request.user,
            subtotal=request.subtotal,
            tax=request.tax,
            shipping_charges=request.shipping_charges,
            discount=request.discount,
            total_amount=request.total_amount,
            order_items=request.order_items,
        )

        await self._check_products(order.order_items)
        stored = await self.documents.insert(Collection.ORDERS, to_document(order))
        try:
            await self.reduce_stocks(order.order_items)
        finally:
            # the order is written even when a stock update fails
            await self.invalidator.invalidate(
                InvalidationRequest(
                    product=True,
                    order=True,
                    admin=True,
                    user_id=order.user,
                    product_id=[item.product_id for item in order.order_items],
                )
            )

        logger.info("Order placed", order_id=order.id, user=order.user, items=len(order.order_items))
        return Order.model_validate(stored)

    async def _check_products(self, items: List[OrderItem]):
        for item in items:
            if await self.documents.find_by_id(Collection.PRODUCTS, item.product_id) is None:
                raise NotFoundError("Product not found", {"product_id": item.product_id})

    async def reduce_stocks(self, items: List[OrderItem]):
        """Take each ordered quantity out of its product's stock."""
        for item in items:
            product = await self.documents.increment(
                Collection.PRODUCTS, item.product_id, "stock", -item.quantity
            )
            if product is None:
                raise NotFoundError("Product not found", {"product_id": item.product_id})

    async def process_order(self, order_id: str) -> Order:
        """Advance an order one fulfilment step."""
        doc = await self.documents.find_by_id(Collection.ORDERS, order_id)
        if doc is None:
            raise NotFoundError("Order Not Found", {"order_id": order_id})

        order = Order.model_validate(doc)
        status = NEXT_STATUS.get(order.status, OrderStatus.DELIVERED)
        stored = await self.documents.update(Collection.ORDERS, order_id, {"status": status.value})

        await self.invalidator.invalidate(
            InvalidationRequest(order=True, admin=True, user_id=order.user, order_id=order_id)
        )

        logger.info("Order processed", order_id=order_id, status=status.value)
        return Order.model_validate(stored)

    async def delete_order(self, order_id: str) -> None:
        doc = await self.documents.find_by_id(Collection.ORDERS, order_id)
        if doc is None:
            raise NotFoundError("Order Not Found", {"order_id": order_id})

        await self.documents.delete(Collection.ORDERS, order_id)

        await self.invalidator.invalidate(
            InvalidationRequest(order=True, admin=True, user_id=doc["user"], order_id=order_id)
        )

        logger.info("Order deleted", order_id=order_id)
