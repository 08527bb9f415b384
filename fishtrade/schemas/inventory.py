from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fishtrade.schemas.common import PaginationMeta

InventoryLogType = Literal["import", "sale", "adjustment", "loss"]
AdjustDirection = Literal["add", "reduce", "set"]
StockStatus = Literal["In Stock", "Low Stock", "Out of Stock"]


class InventoryLogQuery(BaseModel):
    """Filters for reading the inventory log. Dates are inclusive UTC days."""

    product_id: Optional[str] = None
    type: Optional[InventoryLogType] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class StockAdjustIn(BaseModel):
    product_id: str
    direction: AdjustDirection
    quantity: Decimal = Field(
        ...,
        ge=0,
        max_digits=12,
        decimal_places=3,
        description="Units to add or remove; for 'set' the counted on-hand quantity.",
    )
    note: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def validate_quantity(self) -> "StockAdjustIn":
        if self.direction != "set" and self.quantity == 0:
            raise ValueError("quantity must be greater than zero")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id-here",
                "direction": "reduce",
                "quantity": 2,
                "note": "Miscounted at intake",
            }
        }
    )


class StockLossIn(BaseModel):
    product_id: str
    quantity: Decimal = Field(..., gt=0, max_digits=12, decimal_places=3)
    loss_reason: str = Field(..., min_length=1, max_length=100)
    note: Optional[str] = Field(default=None, max_length=255)

    @field_validator("loss_reason")
    @classmethod
    def validate_loss_reason(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("loss_reason is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id-here",
                "quantity": 3,
                "loss_reason": "dead_on_arrival",
                "note": "Found in quarantine tank",
            }
        }
    )


class StockChangeOut(BaseModel):
    product_id: str
    quantity_before: float
    quantity_after: float
    log_entry_id: str | None = None
    last_updated: datetime | None = None


class InventoryRecordOut(BaseModel):
    product_id: str
    quantity: float
    version: int
    last_updated: datetime | None = None


class InventoryLevelOut(BaseModel):
    product_id: str
    sku: str
    name: str
    unit: str
    quantity: float
    min_stock: float
    stock_status: StockStatus
    last_updated: datetime | None = None


class InventoryLevelListOut(BaseModel):
    items: list[InventoryLevelOut]


class InventoryLogEntryOut(BaseModel):
    id: str
    product_id: str
    sequence: int
    type: InventoryLogType
    quantity_change: float
    quantity_before: float
    quantity_after: float
    reference_type: str | None = None
    reference_id: str | None = None
    loss_reason: str | None = None
    note: str | None = None
    actor_id: str
    created_at: datetime


class InventoryLogListOut(BaseModel):
    items: list[InventoryLogEntryOut]
    pagination: PaginationMeta


class InventorySummaryOut(BaseModel):
    total_products: int
    total_units: float
    total_value: float
    low_stock_count: int
    out_of_stock_count: int


class ReconciliationMismatchOut(BaseModel):
    product_id: str
    record_quantity: float
    log_total: float
    latest_quantity_after: float | None = None


class ReconciliationOut(BaseModel):
    ok: bool
    checked_products: int
    mismatches: list[ReconciliationMismatchOut]
