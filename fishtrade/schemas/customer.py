from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from fishtrade.schemas.common import PaginationMeta


class CustomerCreate(BaseModel):
    name: str
    phone: Optional[str] = Field(default=None, max_length=40)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=255)
    note: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    @field_validator("phone", "address", "note")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ada Aquatics",
                "phone": "+2348012345678",
                "email": "orders@ada-aquatics.example",
                "address": "12 Marina Road",
            }
        }
    )


class CustomerOut(BaseModel):
    id: str
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    note: str | None = None
    created_at: datetime


class CustomerListOut(BaseModel):
    items: list[CustomerOut]
    pagination: PaginationMeta
