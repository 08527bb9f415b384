from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fishtrade.schemas.common import PaginationMeta


class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Koi", "description": "Japanese ornamental carp"}}
    )


class CategoryOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime


class ProductCreate(BaseModel):
    name: str
    sku: Optional[str] = None
    scientific_name: Optional[str] = None
    category_id: Optional[str] = None
    size: Optional[str] = None
    unit: str = Field(default="unit", min_length=1, max_length=20)
    min_stock: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)
    cost_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    retail_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    wholesale_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    initial_stock: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    @field_validator("sku", "scientific_name", "category_id", "size")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Koi Showa",
                "scientific_name": "Cyprinus rubrofuscus",
                "category_id": "category-id-here",
                "size": "10-12cm",
                "unit": "fish",
                "min_stock": 5,
                "cost_price": 12.5,
                "retail_price": 25.0,
                "wholesale_price": 18.0,
                "initial_stock": 40,
            }
        }
    )


class ProductOut(BaseModel):
    id: str
    sku: str
    name: str
    scientific_name: str | None = None
    category_id: str | None = None
    size: str | None = None
    unit: str
    min_stock: float
    cost_price: float | None = None
    retail_price: float | None = None
    wholesale_price: float | None = None
    is_active: bool
    quantity: float
    created_at: datetime


class ProductListOut(BaseModel):
    items: list[ProductOut]
    pagination: PaginationMeta


class CategoryListOut(BaseModel):
    items: list[CategoryOut]
