from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel

RiskLevel = Literal["HIGH", "MEDIUM", "LOW"]


class InventoryRiskItemOut(BaseModel):
    product_id: str
    sku: str
    name: str
    quantity: float
    days_in_stock: int
    risk_level: RiskLevel
    total_imported: float
    total_losses: float
    loss_rate: float
    estimated_loss_value: float
    last_updated: datetime | None = None


class InventoryRiskOut(BaseModel):
    overall_loss_rate: float
    items: list[InventoryRiskItemOut]


class LossRateOut(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    total_imported: float
    total_losses: float
    loss_rate: float


class MovementTypeOut(BaseModel):
    type: str
    entry_count: int
    net_change: float


class MovementProductOut(BaseModel):
    product_id: str
    entry_count: int
    net_change: float


class MovementSummaryOut(BaseModel):
    by_type: list[MovementTypeOut]
    by_product: list[MovementProductOut]
