r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as request payload validators, response serialisation
schemas, and output contracts for structured generation.  Field names are
snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["admin", "inventory-manager", "viewer"]
ActiveStatus = Literal["active", "inactive"]
OrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]
PurchaseOrderStatus = Literal["Pending", "Received"]
NotificationType = Literal["low-stock", "new-order", "info"]
PromotionKind = Literal["deal", "festival"]

NOT_AVAILABLE = "N/A"


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Stock forecasting


class StockObservation(BaseModel):
    """One on-hand quantity snapshot for an item."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: date
    level: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("level", "stock"),
        description="Units on hand at the end of the day",
    )


class Recommendation(CamelModel):
    """A reorder recommendation: hold ``recommended_level`` units by ``date``."""

    date: str
    recommended_level: Annotated[int, Field(ge=0)] | Literal["N/A"]
    reason: Optional[str] = None


class ForecastResult(CamelModel):
    """Analysis text plus the parsed reorder schedule for one item."""

    analysis: str
    recommendations: List[Recommendation]


class ForecastStockInput(CamelModel):
    """Caller-facing forecast request carrying an already serialised series."""

    product_name: str = Field(..., description="The name of the product to forecast.")
    historical_stock_data: str = Field(
        "",
        description="Historical stock data as a JSON string, including date and stock level.",
    )


class ForecastStockOutput(CamelModel):
    """Structured-generation contract for stock forecasts."""

    forecasted_stock_needs: str = Field(
        ...,
        description=(
            "Forecasted stock needs as a JSON array of objects with the keys "
            "'date' (YYYY-MM-DD) and 'recommended_stock_level' (integer)."
        ),
    )
    analysis: str = Field(..., description="The analysis of the historical stock data.")


# ---------------------------------------------------------------------------
# Products


class ProductBase(CamelModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[str] = None
    image_url: Optional[str] = None
    status: ActiveStatus = "active"


class ProductCreate(ProductBase):
    stock: int = Field(0, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[ActiveStatus] = None
    low_stock_threshold: Optional[int] = Field(None, ge=0)


class Product(ProductBase):
    id: str
    stock: int
    low_stock_threshold: int
    historical_data: str = "[]"
    created_at: datetime
    updated_at: datetime


class StockUpdate(CamelModel):
    stock: int = Field(..., ge=0)
    as_of: Optional[date] = None


class BulkDeleteRequest(CamelModel):
    product_ids: List[str] = Field(..., min_length=1)


class BulkAddResult(CamelModel):
    count: int
    products: List[Product]


class BulkAssignRequest(CamelModel):
    """Add products to an existing deal or festival."""

    product_ids: List[str] = Field(..., min_length=1)
    target: PromotionKind
    target_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Users


class UserProfile(CamelModel):
    uid: str
    name: str
    email: str
    role: Role = "viewer"
    status: ActiveStatus = "active"
    phone_number: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OwnProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    phone_number: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None


class AdminUserUpdate(OwnProfileUpdate):
    role: Optional[Role] = None
    status: Optional[ActiveStatus] = None


# ---------------------------------------------------------------------------
# Orders, suppliers and purchase orders


class OrderItem(CamelModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., gt=0)


class OrderCreate(CamelModel):
    user_id: str
    items: List[OrderItem] = Field(..., min_length=1)
    payment_method: str = "cash"
    delivery_charge: float = Field(0.0, ge=0)
    discount_amount: float = Field(0.0, ge=0)


class Order(OrderCreate):
    id: str
    total_amount: float
    status: OrderStatus = "Pending"
    order_date: datetime
    completed_at: Optional[datetime] = None


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class SupplierCreate(CamelModel):
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class Supplier(SupplierCreate):
    id: str
    created_at: datetime


class PurchaseOrderItem(CamelModel):
    product_id: str
    name: str
    quantity: int = Field(..., gt=0)
    cost_per_item: float = Field(..., ge=0)


class PurchaseOrderCreate(CamelModel):
    supplier_id: str
    items: List[PurchaseOrderItem] = Field(..., min_length=1)


class PurchaseOrder(PurchaseOrderCreate):
    id: str
    status: PurchaseOrderStatus = "Pending"
    total_cost: float
    created_at: datetime
    received_at: Optional[datetime] = None


class Notification(CamelModel):
    id: str
    title: str
    description: str
    type: NotificationType
    is_read: bool = False
    created_at: datetime
    link: Optional[str] = None


# ---------------------------------------------------------------------------
# Festivals and deals

_SLUG_PATTERN = r"^[a-z0-9-]+$"


class PromotionBase(CamelModel):
    """Fields shared by festivals and deals: a dated campaign over a set of products."""

    title: str = Field(..., min_length=2)
    start_date: date
    end_date: date
    product_ids: List[str] = Field(default_factory=list)
    url_slug: str = Field(
        ...,
        min_length=2,
        pattern=_SLUG_PATTERN,
        description="Lowercase letters, numbers and hyphens only",
    )
    is_active: bool = True


class PromotionUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    product_ids: Optional[List[str]] = None
    url_slug: Optional[str] = Field(None, min_length=2, pattern=_SLUG_PATTERN)
    is_active: Optional[bool] = None


class FestivalCreate(PromotionBase):
    pass


class FestivalUpdate(PromotionUpdate):
    pass


class Festival(FestivalCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class DealCreate(PromotionBase):
    description: Optional[str] = None
    discount_percentage: Optional[float] = Field(None, gt=0, le=100)


class DealUpdate(PromotionUpdate):
    description: Optional[str] = None
    discount_percentage: Optional[float] = Field(None, gt=0, le=100)


class Deal(DealCreate):
    id: str
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# AI-assisted content


class ProductDescriptionInput(CamelModel):
    product_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    keywords: Optional[str] = None


class ProductDescriptionOutput(CamelModel):
    description: str = Field(..., description="The generated product description.")


class ProductCategoryInput(CamelModel):
    product_name: str = Field(..., min_length=1)


class ProductCategoryOutput(CamelModel):
    category: str = Field(..., description="The generated product category.")
    subcategory: str = Field(..., description="The generated product subcategory.")


class ProductNameInput(CamelModel):
    category: str = Field(..., min_length=1)
    description: Optional[str] = None


class ProductNameOutput(CamelModel):
    product_name: str = Field(..., description="The suggested product name.")


class TopProduct(CamelModel):
    product_name: str = Field(..., description="The name of the top-performing product.")
    reason: str = Field(..., description="Why this product is considered a top performer.")


class BusinessInsightsOutput(CamelModel):
    business_summary: str = Field(
        ..., description="A concise, high-level summary of the business's performance."
    )
    top_performing_products: List[TopProduct] = Field(
        ..., description="The top 3-5 performing products."
    )
    recommendations: List[str] = Field(
        ..., description="Three actionable, strategic recommendations for the business."
    )


class ProductImageInput(CamelModel):
    product_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)


class ProductImageOutput(CamelModel):
    image_url: str = Field(..., description="The data URI of the generated image.")
