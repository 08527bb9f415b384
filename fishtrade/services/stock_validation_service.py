from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import Session

from fishtrade.core.errors import InsufficientStockError, OrderValidationError, StockShortage
from fishtrade.core.money import ZERO_QUANTITY, to_quantity
from fishtrade.services.inventory_service import get_product, select_record


class StockLine(Protocol):
    product_id: str
    quantity: Decimal


def requested_quantities(items: Iterable[StockLine]) -> dict[str, Decimal]:
    """Sum requested quantities per product, keyed in lock order (sorted product id)."""
    totals: dict[str, Decimal] = {}
    for item in items:
        if not item.product_id:
            raise OrderValidationError("Each item needs a product_id", field="items.product_id")
        quantity = to_quantity(item.quantity)
        if quantity <= 0:
            raise OrderValidationError(
                f"Quantity for product {item.product_id} must be greater than zero",
                field="items.quantity",
            )
        totals[item.product_id] = totals.get(item.product_id, ZERO_QUANTITY) + quantity
    return {product_id: totals[product_id] for product_id in sorted(totals)}


def ensure_available(
    db: Session,
    items: Iterable[StockLine],
    *,
    lock: bool = True,
    order_id: str | None = None,
) -> dict[str, Decimal]:
    """
    Check every line can be deducted before anything is written.

    Lines for the same product are summed. With ``lock`` the inventory rows
    are locked in product-id order and stay locked until the caller's
    transaction ends, so the deduction that follows sees the same numbers.
    Raises InsufficientStockError listing every short product; returns the
    available quantity per product otherwise.
    """
    requested = requested_quantities(items)
    if not requested:
        raise OrderValidationError("At least one item is required", field="items")

    available: dict[str, Decimal] = {}
    shortages: list[StockShortage] = []
    for product_id, quantity in requested.items():
        product = get_product(db, product_id)
        record = select_record(db, product_id, lock=lock)
        on_hand = to_quantity(record.quantity) if record is not None else ZERO_QUANTITY
        available[product_id] = on_hand
        if on_hand < quantity:
            shortages.append(
                StockShortage(
                    product_id=product_id,
                    product_name=product.name,
                    available=on_hand,
                    requested=quantity,
                )
            )

    if shortages:
        raise InsufficientStockError(shortages, order_id=order_id)
    return available
