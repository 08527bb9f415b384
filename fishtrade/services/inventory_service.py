"""
Inventory ledger: the only code that writes ``InventoryRecord.quantity``.

Every change goes through ``apply_stock_change``, which locks the product's
record, computes ``after = before + delta``, refuses to go below zero, then
updates the record and appends exactly one InventoryLogEntry. The entry's
``sequence`` is the record version the change produces, so two writers that
read the same "before" cannot both commit.

``apply_stock_change`` and ``set_stock_level`` run inside the caller's
transaction and never commit; order services compose them under one
``atomic`` block. ``adjust_stock`` and ``record_loss`` are standalone
operations and own their transaction.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from fishtrade.core.errors import (
    InsufficientStockError,
    NotFoundError,
    OrderValidationError,
    StockShortage,
)
from fishtrade.core.id_utils import generate_id
from fishtrade.core.money import ZERO_QUANTITY, fits_quantity, to_quantity
from fishtrade.core.observability import get_request_id
from fishtrade.core.time_utils import utcnow
from fishtrade.db.transaction import atomic, lock_for_update
from fishtrade.models.inventory import (
    INVENTORY_LOG_TYPES,
    LOG_TYPE_ADJUSTMENT,
    LOG_TYPE_LOSS,
    REF_LOSS,
    REF_MANUAL_ADJUSTMENT,
    REF_STOCK_COUNT,
    InventoryLogEntry,
    InventoryRecord,
)
from fishtrade.models.product import Product

logger = logging.getLogger("fishtrade.inventory")


@dataclass(frozen=True)
class LedgerAdjustment:
    product_id: str
    quantity_before: Decimal
    quantity_after: Decimal
    record: InventoryRecord | None
    entry: InventoryLogEntry | None

    @property
    def quantity_change(self) -> Decimal:
        return self.quantity_after - self.quantity_before

    @property
    def changed(self) -> bool:
        return self.entry is not None


def get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)
    return product


def select_record(db: Session, product_id: str, *, lock: bool = False) -> InventoryRecord | None:
    stmt = select(InventoryRecord).where(InventoryRecord.product_id == product_id)
    if lock:
        stmt = lock_for_update(stmt)
    # Always reload: a copy cached in the session may predate the lock.
    stmt = stmt.execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def apply_stock_change(
    db: Session,
    *,
    product_id: str,
    delta: Decimal | int | str,
    log_type: str,
    actor_id: str,
    reference_type: str | None = None,
    reference_id: str | None = None,
    note: str | None = None,
    loss_reason: str | None = None,
) -> LedgerAdjustment:
    if log_type not in INVENTORY_LOG_TYPES:
        raise OrderValidationError(f"Unknown inventory log type: {log_type}", field="type")
    if not fits_quantity(delta):
        raise OrderValidationError(f"Quantity change {delta} is out of range", field="quantity")
    change = to_quantity(delta)
    if change == 0:
        raise OrderValidationError("Quantity change cannot be zero", field="quantity")
    if not actor_id:
        raise OrderValidationError("actor_id is required", field="actor_id")

    product = get_product(db, product_id)
    record = select_record(db, product_id, lock=True)
    before = to_quantity(record.quantity) if record is not None else ZERO_QUANTITY
    after = before + change
    if not fits_quantity(after):
        raise OrderValidationError(
            f"Resulting stock {after} for product {product_id} is out of range", field="quantity"
        )
    if after < 0:
        raise InsufficientStockError(
            [
                StockShortage(
                    product_id=product_id,
                    product_name=product.name,
                    available=before,
                    requested=-change,
                )
            ],
            order_id=reference_id,
        )

    now = utcnow()
    if record is None:
        record = InventoryRecord(product_id=product_id, quantity=after, last_updated=now)
        db.add(record)
        sequence = 1
    else:
        sequence = record.version + 1
        record.quantity = after
        record.last_updated = now

    entry = InventoryLogEntry(
        id=generate_id(),
        product_id=product_id,
        sequence=sequence,
        type=log_type,
        quantity_change=change,
        quantity_before=before,
        quantity_after=after,
        reference_type=reference_type,
        reference_id=reference_id,
        loss_reason=loss_reason,
        note=note,
        actor_id=actor_id,
        created_at=now,
    )
    db.add(entry)
    db.flush()

    logger.info(
        json.dumps(
            {
                "event": "ledger.adjust",
                "request_id": get_request_id(),
                "product_id": product_id,
                "type": log_type,
                "change": str(change),
                "before": str(before),
                "after": str(after),
                "sequence": sequence,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "actor_id": actor_id,
            }
        )
    )
    return LedgerAdjustment(
        product_id=product_id,
        quantity_before=before,
        quantity_after=after,
        record=record,
        entry=entry,
    )


def set_stock_level(
    db: Session,
    *,
    product_id: str,
    quantity: Decimal | int | str,
    actor_id: str,
    log_type: str = LOG_TYPE_ADJUSTMENT,
    reference_type: str | None = REF_STOCK_COUNT,
    reference_id: str | None = None,
    note: str | None = None,
) -> LedgerAdjustment:
    """Move the on-hand quantity to an absolute value. Writes nothing when already there."""
    if not fits_quantity(quantity):
        raise OrderValidationError(f"Stock level {quantity} is out of range", field="quantity")
    target = to_quantity(quantity)
    if target < 0:
        raise OrderValidationError("Stock level cannot be negative", field="quantity")

    get_product(db, product_id)
    record = select_record(db, product_id, lock=True)
    before = to_quantity(record.quantity) if record is not None else ZERO_QUANTITY
    if target == before:
        return LedgerAdjustment(
            product_id=product_id,
            quantity_before=before,
            quantity_after=before,
            record=record,
            entry=None,
        )
    return apply_stock_change(
        db,
        product_id=product_id,
        delta=target - before,
        log_type=log_type,
        actor_id=actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
    )


def adjust_stock(
    db: Session,
    *,
    product_id: str,
    direction: Literal["add", "reduce", "set"],
    quantity: Decimal | int | str,
    actor_id: str,
    note: str | None = None,
) -> LedgerAdjustment:
    if not fits_quantity(quantity):
        raise OrderValidationError(f"Quantity {quantity} is out of range", field="quantity")
    amount = to_quantity(quantity)
    if amount < 0:
        raise OrderValidationError("quantity cannot be negative", field="quantity")

    with atomic(db, operation="inventory.adjust"):
        if direction == "set":
            return set_stock_level(
                db,
                product_id=product_id,
                quantity=amount,
                actor_id=actor_id,
                note=note,
            )
        if direction == "add":
            delta = amount
        elif direction == "reduce":
            delta = -amount
        else:
            raise OrderValidationError(
                "direction must be one of: add, reduce, set", field="direction"
            )
        return apply_stock_change(
            db,
            product_id=product_id,
            delta=delta,
            log_type=LOG_TYPE_ADJUSTMENT,
            actor_id=actor_id,
            reference_type=REF_MANUAL_ADJUSTMENT,
            note=note,
        )


def record_loss(
    db: Session,
    *,
    product_id: str,
    quantity: Decimal | int | str,
    loss_reason: str,
    actor_id: str,
    note: str | None = None,
) -> LedgerAdjustment:
    if not fits_quantity(quantity):
        raise OrderValidationError(f"Loss quantity {quantity} is out of range", field="quantity")
    amount = to_quantity(quantity)
    if amount <= 0:
        raise OrderValidationError("Loss quantity must be greater than zero", field="quantity")
    reason = (loss_reason or "").strip()
    if not reason:
        raise OrderValidationError("loss_reason is required", field="loss_reason")

    with atomic(db, operation="inventory.record_loss"):
        return apply_stock_change(
            db,
            product_id=product_id,
            delta=-amount,
            log_type=LOG_TYPE_LOSS,
            actor_id=actor_id,
            reference_type=REF_LOSS,
            loss_reason=reason,
            note=note,
        )


def get_stock(db: Session, product_id: str) -> Decimal:
    get_product(db, product_id)
    record = select_record(db, product_id)
    if record is None:
        return ZERO_QUANTITY
    return to_quantity(record.quantity)


def get_inventory_record(db: Session, product_id: str) -> InventoryRecord | None:
    get_product(db, product_id)
    return select_record(db, product_id)
