from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from fishtrade.core.errors import InvalidTransitionError, OrderValidationError
from fishtrade.core.money import ZERO_MONEY, fits_money, fits_quantity, to_money, to_quantity


@dataclass(frozen=True)
class PricedLine:
    line_number: int
    product_id: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


def price_lines(items: Iterable) -> list[PricedLine]:
    lines: list[PricedLine] = []
    for index, item in enumerate(items, start=1):
        product_id = (getattr(item, "product_id", None) or "").strip()
        if not product_id:
            raise OrderValidationError(f"Item {index} is missing product_id", field="items.product_id")
        if getattr(item, "quantity", None) is None:
            raise OrderValidationError(f"Item {index} is missing quantity", field="items.quantity")
        if getattr(item, "unit_price", None) is None:
            raise OrderValidationError(f"Item {index} is missing unit_price", field="items.unit_price")
        if not fits_quantity(item.quantity):
            raise OrderValidationError(
                f"Item {index} quantity is out of range", field="items.quantity"
            )
        if not fits_money(item.unit_price):
            raise OrderValidationError(
                f"Item {index} unit_price is out of range", field="items.unit_price"
            )
        quantity = to_quantity(item.quantity)
        unit_price = to_money(item.unit_price)
        if quantity <= 0:
            raise OrderValidationError(
                f"Item {index} quantity must be greater than zero", field="items.quantity"
            )
        if unit_price < 0:
            raise OrderValidationError(
                f"Item {index} unit_price cannot be negative", field="items.unit_price"
            )
        total_price = quantity * unit_price
        if not fits_money(total_price):
            raise OrderValidationError(
                f"Item {index} total_price is out of range", field="items.quantity"
            )
        lines.append(
            PricedLine(
                line_number=index,
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=to_money(total_price),
            )
        )
    if not lines:
        raise OrderValidationError("At least one item is required", field="items")
    return lines


def lines_subtotal(lines: Sequence[PricedLine]) -> Decimal:
    subtotal = sum((line.total_price for line in lines), ZERO_MONEY)
    if not fits_money(subtotal):
        raise OrderValidationError("Order total is out of range", field="items")
    return to_money(subtotal)


def checked_money(value: Decimal | int | str, *, field: str) -> Decimal:
    if not fits_money(value):
        raise OrderValidationError(f"{field} is out of range", field=field)
    return to_money(value)


def normalize_status(status: str | None, allowed: Sequence[str], *, entity_type: str) -> str:
    normalized = (status or "").strip().lower()
    if normalized not in allowed:
        raise OrderValidationError(
            f"Invalid {entity_type.replace('_', ' ')} status. Allowed: {', '.join(allowed)}",
            field="status",
        )
    return normalized


def ensure_transition_allowed(
    transitions: dict[str, set[str]],
    *,
    entity_type: str,
    entity_id: str,
    current_status: str,
    next_status: str,
) -> None:
    if next_status not in transitions.get(current_status, set()):
        raise InvalidTransitionError(
            entity_type=entity_type,
            entity_id=entity_id,
            current_status=current_status,
            requested_status=next_status,
        )
