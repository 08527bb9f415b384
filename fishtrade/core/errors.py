"""
Typed errors raised by the inventory core.

Every error carries a machine-readable ``code``, the HTTP status the API layer
renders it with, and structured attributes exposed through ``to_details()``.
Callers catch by type; nothing downstream parses messages.

    FishtradeError
    +-- InsufficientStockError      insufficient_stock   409
    +-- InvalidTransitionError      invalid_transition   409
    +-- OrderValidationError        validation_error     422
    +-- NotFoundError               not_found            404
    +-- PersistenceFailureError     persistence_failure  503 (retryable)
    +-- ImmutableRecordError        immutable_record     500
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any


class FishtradeError(Exception):
    code: str = "fishtrade_error"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_details(self) -> list[dict[str, Any]] | None:
        return None


@dataclass(frozen=True)
class StockShortage:
    product_id: str
    product_name: str | None
    available: Decimal
    requested: Decimal

    def describe(self) -> str:
        label = self.product_name or self.product_id
        return f"{label}: available {_fmt(self.available)}, requested {_fmt(self.requested)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "available": float(self.available),
            "requested": float(self.requested),
        }


class InsufficientStockError(FishtradeError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, shortages: list[StockShortage], *, order_id: str | None = None):
        if not shortages:
            raise ValueError("InsufficientStockError requires at least one shortage")
        self.shortages = shortages
        self.order_id = order_id
        first = shortages[0]
        self.product_id = first.product_id
        self.product_name = first.product_name
        self.available = first.available
        self.requested = first.requested
        message = f"Insufficient stock for {first.describe()}"
        if len(shortages) > 1:
            message += f" (and {len(shortages) - 1} more item(s))"
        super().__init__(message)

    def to_details(self) -> list[dict[str, Any]]:
        return [
            {**shortage.to_dict(), "order_id": self.order_id}
            for shortage in self.shortages
        ]


class InvalidTransitionError(FishtradeError):
    code = "invalid_transition"
    status_code = 409

    def __init__(
        self,
        *,
        entity_type: str,
        entity_id: str,
        current_status: str,
        requested_status: str,
        reason: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.requested_status = requested_status
        message = (
            f"Cannot transition {entity_type} {entity_id} "
            f"from '{current_status}' to '{requested_status}'"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def to_details(self) -> list[dict[str, Any]]:
        return [
            {
                "entity_type": self.entity_type,
                "entity_id": self.entity_id,
                "current_status": self.current_status,
                "requested_status": self.requested_status,
            }
        ]


class OrderValidationError(FishtradeError):
    code = "validation_error"
    status_code = 422

    def __init__(self, message: str, *, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_details(self) -> list[dict[str, Any]] | None:
        if self.field is None:
            return None
        return [{"field": self.field, "message": self.message, "type": self.code}]


class NotFoundError(FishtradeError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.replace('_', ' ').capitalize()} not found: {entity_id}")

    def to_details(self) -> list[dict[str, Any]]:
        return [{"entity_type": self.entity_type, "entity_id": self.entity_id}]


class PersistenceFailureError(FishtradeError):
    code = "persistence_failure"
    status_code = 503
    retryable = True

    def __init__(self, message: str, *, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class ImmutableRecordError(FishtradeError):
    code = "immutable_record"
    status_code = 500

    def __init__(self, entity_type: str, entity_id: str | None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} is append-only and cannot be modified")


def _fmt(value: Decimal) -> str:
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")
