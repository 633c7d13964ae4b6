"""
Discount coupons. Coupon reads are not cached.
"""

from typing import List

from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.logging import get_logger
from ..models import Collection, Coupon, NewCouponRequest, Number, to_document
from ..persistence.documents import DocumentStore, new_document_id

logger = get_logger("storefront.services.coupons")


class CouponService:
    def __init__(self, documents: DocumentStore):
        self.documents = documents

    async def create_coupon(self, request: NewCouponRequest) -> Coupon:
        if not request.code or not request.amount:
            raise ValidationError("Please enter both coupon and amount")

        if await self.documents.count(Collection.COUPONS, {"code": request.code}):
            raise ConflictError("Coupon code already exists", {"code": request.code})

        coupon = Coupon(_id=new_document_id(), code=request.code, amount=request.amount)
        stored = await self.documents.insert(Collection.COUPONS, to_document(coupon))

        logger.info("Coupon created", coupon_id=coupon.id, code=coupon.code)
        return Coupon.model_validate(stored)

    async def apply_discount(self, code: str) -> Number:
        matches = await self.documents.find(Collection.COUPONS, {"code": code}, limit=1)
        if not matches:
            raise ValidationError("Invalid Coupon Code", {"code": code})
        return matches[0]["amount"]

    async def list_coupons(self) -> List[Coupon]:
        docs = await self.documents.find(Collection.COUPONS)
        return [Coupon.model_validate(doc) for doc in docs]

    async def delete_coupon(self, coupon_id: str) -> None:
        if not await self.documents.delete(Collection.COUPONS, coupon_id):
            raise NotFoundError("Invalid Coupon ID", {"coupon_id": coupon_id})

        logger.info("Coupon deleted", coupon_id=coupon_id)
