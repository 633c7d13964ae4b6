"""
Product catalog writes and search.
"""

import asyncio
import math
from typing import Optional

from shared.config import BaseConfig
from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from ..caching.invalidation import CacheInvalidator, InvalidationRequest
from ..models import (
    Collection,
    NewProductRequest,
    Product,
    ProductSearchResult,
    UpdateProductRequest,
    to_document,
)
from ..persistence.documents import DocumentStore, new_document_id

logger = get_logger("storefront.services.products")

REQUIRED_PRODUCT_FIELDS = ("name", "category", "price", "stock", "photo")


class ProductService:
    """Creates, updates, deletes and searches products."""

    def __init__(self, documents: DocumentStore, invalidator: CacheInvalidator, config: BaseConfig):
        self.documents = documents
        self.invalidator = invalidator
        self.config = config

    async def create_product(self, request: NewProductRequest) -> Product:
        missing = [field for field in REQUIRED_PRODUCT_FIELDS if getattr(request, field) in (None, "")]
        if missing:
            raise ValidationError("Please fill all fields", {"missing": missing})

        product = Product(
            _id=new_document_id(),
            name=request.name,
            photo=request.photo,
            price=request.price,
            stock=request.stock,
            category=request.category.lower(),
        )
        stored = await self.documents.insert(Collection.PRODUCTS, to_document(product))

        await self.invalidator.invalidate(InvalidationRequest(product=True, admin=True))

        logger.info("Product created", product_id=product.id, category=product.category)
        return Product.model_validate(stored)

    async def update_product(self, product_id: str, request: UpdateProductRequest) -> Product:
        existing = await self.documents.find_by_id(Collection.PRODUCTS, product_id)
        if existing is None:
            raise NotFoundError("Product not found", {"product_id": product_id})

        changes = request.model_dump(exclude_none=True)
        if "category" in changes:
            changes["category"] = changes["category"].lower()

        stored = await self.documents.update(Collection.PRODUCTS, product_id, changes) if changes else existing

        await self.invalidator.invalidate(
            InvalidationRequest(product=True, admin=True, product_id=product_id)
        )

        logger.info("Product updated", product_id=product_id, fields=sorted(changes))
        return Product.model_validate(stored)

    async def delete_product(self, product_id: str) -> None:
        if not await self.documents.delete(Collection.PRODUCTS, product_id):
            raise NotFoundError("Product not found", {"product_id": product_id})

        await self.invalidator.invalidate(
            InvalidationRequest(product=True, admin=True, product_id=product_id)
        )

        logger.info("Product deleted", product_id=product_id)

    async def search_products(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
    ) -> ProductSearchResult:
        """Paginated product search; not cached."""
        limit = self.config.product_per_page
        page = max(page, 1)

        query = {}
        if category:
            query["category"] = category.lower()
        if search:
            query["name"] = {"$regex": search, "$options": "i"}
        if price:
            query["price"] = {"$lte": price}

        order = None
        if sort:
            order = {"price": 1 if sort == "asc" else -1}

        docs, total_count = await asyncio.gather(
            self.documents.find(
                Collection.PRODUCTS,
                query,
                sort=order,
                limit=limit,
                skip=(page - 1) * limit,
            ),
            self.documents.count(Collection.PRODUCTS, query),
        )

        return ProductSearchResult(
            products=[Product.model_validate(doc) for doc in docs],
            total_pages=math.ceil(total_count / limit),
        )
