"""
Document and request models for the Storefront service.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

Number = Union[int, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def age_on(dob: datetime, today: date) -> int:
    """Age in whole years; the birthday has to have passed this year."""
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


class Collection:
    """Document collection names."""
    USERS = "users"
    PRODUCTS = "products"
    ORDERS = "orders"
    COUPONS = "coupons"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class OrderStatus(str, Enum):
    """Order fulfilment states, in processing order."""
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"


class Document(BaseModel):
    """Base for documents read from the document store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class User(Document):
    name: str
    email: str
    photo: str
    role: UserRole = UserRole.USER
    gender: Gender
    dob: datetime

    @computed_field
    @property
    def age(self) -> int:
        return age_on(self.dob, date.today())


class Product(Document):
    name: str
    photo: str
    price: float
    stock: int
    category: str


class ShippingInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    city: str
    state: str
    country: str
    pin_code: int


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    photo: str
    price: float
    quantity: int
    product_id: str


class Order(Document):
    shipping_info: ShippingInfo
    user: str
    subtotal: float
    tax: float = 0
    shipping_charges: float = 0
    discount: float = 0
    total_amount: float
    status: OrderStatus = OrderStatus.PROCESSING
    order_items: List[OrderItem] = Field(default_factory=list)


class OrderView(Order):
    """Order with the ordering user's name attached."""
    user_name: Optional[str] = None


class Coupon(Document):
    code: str
    amount: float


# Request bodies. Fields are optional so missing values are reported with
# the service's own 400 error rather than FastAPI's 422.

class NewUserRequest(BaseModel):
    id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None
    gender: Optional[Gender] = None
    dob: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class NewProductRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    photo: Optional[str] = None


class UpdateProductRequest(NewProductRequest):
    pass


class NewOrderRequest(BaseModel):
    shipping_info: Optional[ShippingInfo] = None
    order_items: Optional[List[OrderItem]] = None
    user: Optional[str] = None
    subtotal: Optional[float] = None
    tax: float = 0
    shipping_charges: float = 0
    discount: float = 0
    total_amount: Optional[float] = None


class NewCouponRequest(BaseModel):
    code: Optional[str] = None
    amount: Optional[float] = None


class ProductSearchResult(BaseModel):
    products: List[Product]
    total_pages: int


# Dashboard views

class Percentages(BaseModel):
    model_config = ConfigDict(frozen=True)

    revenue: Number
    products: Number
    users: Number
    orders: Number


class Counts(BaseModel):
    model_config = ConfigDict(frozen=True)

    products: int
    users: int
    orders: int
    revenue: Number


class LatestTransaction(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="_id")
    discount: Number
    amount: Number
    quantity: int
    status: OrderStatus


class DashboardStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_count: List[Dict[str, int]]
    percentages: Percentages
    count: Counts
    chart: Dict[str, List[Number]]
    user_ratio: Dict[str, int]
    latest_transactions: List[LatestTransaction]


class RevenueDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    net_margin: Number
    discount: Number
    production_cost: Number
    burnt: Number
    marketing_cost: Number


class PieCharts(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_fulfillment: Dict[str, int]
    product_categories: List[Dict[str, int]]
    stock_availability: Dict[str, int]
    revenue_distribution: RevenueDistribution
    users_age_group: Dict[str, int]
    admin_customers: Dict[str, int]


class BarCharts(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: List[Number]
    products: List[Number]
    orders: List[Number]


class LineCharts(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: List[Number]
    products: List[Number]
    discount: List[Number]
    revenue: List[Number]


def to_document(model: BaseModel) -> Dict[str, Any]:
    """Dump a model to the dictionary shape stored in the document store."""
    return model.model_dump(mode="python", by_alias=True, exclude={"age"})
