from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fishtrade.schemas.common import PaginationMeta
from fishtrade.schemas.sale_order import OrderItemIn


class ImportOrderCreate(BaseModel):
    supplier_id: str = Field(..., min_length=1)
    order_date: Optional[date] = None
    expected_delivery: Optional[date] = None
    total_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Invoiced total; defaults to the sum of the lines.",
    )
    notes: Optional[str] = Field(default=None, max_length=500)
    items: list[OrderItemIn] = Field(min_length=1)

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "supplier_id": "supplier-id-here",
                "expected_delivery": "2026-10-25",
                "items": [
                    {
                        "product_id": "product-id-here",
                        "quantity": 20,
                        "unit_price": 5.0,
                    }
                ],
            }
        }
    )


class ImportOrderStatusUpdateIn(BaseModel):
    status: str
    delivery_date: Optional[date] = None
    total_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "delivered", "delivery_date": "2026-10-19"}}
    )


class ImportOrderItemsReplaceIn(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)


class ImportOrderItemOut(BaseModel):
    id: str
    product_id: str
    quantity: float
    unit_price: float
    total_price: float
    batch_id: str


class ImportOrderOut(BaseModel):
    id: str
    order_number: str
    supplier_id: str
    supplier_name: str | None = None
    order_date: date
    expected_delivery: date | None = None
    delivery_date: date | None = None
    status: str
    total_amount: float
    notes: str | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    items: list[ImportOrderItemOut]


class ImportOrderListOut(BaseModel):
    items: list[ImportOrderOut]
    pagination: PaginationMeta


class ImportOrderQuery(BaseModel):
    status: Optional[str] = None
    supplier_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)
