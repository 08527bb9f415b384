from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fishtrade.schemas.common import PaginationMeta

SaleType = Literal["retail", "wholesale"]


class OrderItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0, max_digits=12, decimal_places=3)
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class SaleOrderCreate(BaseModel):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, max_length=120)
    order_date: Optional[date] = None
    status: str = "pending"
    sale_type: SaleType = "retail"
    payment_method: Optional[str] = Field(default=None, max_length=30)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=500)
    items: list[OrderItemIn] = Field(min_length=1)

    @field_validator("customer_id", "customer_name", "payment_method", "notes")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_name": "Ada Aquatics",
                "sale_type": "wholesale",
                "payment_method": "transfer",
                "discount_amount": 5.0,
                "notes": "Deliver before noon",
                "items": [
                    {
                        "product_id": "product-id-here",
                        "quantity": 7,
                        "unit_price": 25.0,
                    }
                ],
            }
        }
    )


class SaleOrderStatusUpdateIn(BaseModel):
    status: str

    model_config = ConfigDict(json_schema_extra={"example": {"status": "completed"}})


class SaleOrderUpdateIn(BaseModel):
    """Metadata-only edit. Fields left out of the payload are not touched."""

    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, max_length=120)
    payment_method: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_customer_reference(self) -> "SaleOrderUpdateIn":
        if self.customer_id and self.customer_name:
            raise ValueError("Provide either customer_id or customer_name, not both")
        return self

    model_config = ConfigDict(
        json_schema_extra={"example": {"notes": "Customer collects on Friday", "payment_method": "cash"}}
    )


class SaleOrderItemsReplaceIn(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class SaleOrderItemOut(BaseModel):
    id: str
    product_id: str
    quantity: float
    unit_price: float
    total_price: float


class SaleOrderOut(BaseModel):
    id: str
    order_number: str
    customer_id: str | None = None
    customer_name: str
    order_date: date
    status: str
    sale_type: str
    payment_method: str | None = None
    subtotal: float
    discount_amount: float
    total_amount: float
    notes: str | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    items: list[SaleOrderItemOut]


class SaleOrderListOut(BaseModel):
    items: list[SaleOrderOut]
    pagination: PaginationMeta


class SaleOrderQuery(BaseModel):
    status: Optional[str] = None
    customer_id: Optional[str] = None
    sale_type: Optional[SaleType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)
