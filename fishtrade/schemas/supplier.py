from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from fishtrade.schemas.common import PaginationMeta


class SupplierCreate(BaseModel):
    name: str
    contact_person: Optional[str] = Field(default=None, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=40)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    @field_validator("contact_person", "phone", "address")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Blue Lagoon Hatchery",
                "contact_person": "T. Okafor",
                "phone": "+2348098765432",
            }
        }
    )


class SupplierOut(BaseModel):
    id: str
    name: str
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    created_at: datetime


class SupplierListOut(BaseModel):
    items: list[SupplierOut]
    pagination: PaginationMeta
