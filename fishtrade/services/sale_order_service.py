"""
Sale order lifecycle and the stock movements it drives.

    pending    -> processing, completed, cancelled
    processing -> completed, cancelled
    completed  -> cancelled
    cancelled  -> pending, processing, completed   (reactivation)

Stock is deducted when an order is created and again when a cancelled order
is reactivated; it is restored when an order is cancelled, edited or deleted.
Moves among pending/processing/completed only change the status. Every public
operation here is one ``atomic`` unit: a failure on any line rolls back the
order rows and every ledger change made before it.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fishtrade.core.config import settings
from fishtrade.core.errors import InvalidTransitionError, NotFoundError, OrderValidationError
from fishtrade.core.id_utils import generate_id, generate_order_number
from fishtrade.core.money import ZERO_MONEY, to_money
from fishtrade.core.observability import get_request_id
from fishtrade.core.time_utils import utcnow
from fishtrade.db.transaction import atomic, lock_for_update
from fishtrade.models.inventory import (
    LOG_TYPE_ADJUSTMENT,
    LOG_TYPE_SALE,
    REF_SALE_ORDER,
    REF_SALE_ORDER_CANCEL,
    REF_SALE_ORDER_DELETE,
    REF_SALE_ORDER_EDIT,
)
from fishtrade.models.sale_order import (
    SALE_ORDER_STATUSES,
    SALE_STATUS_CANCELLED,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_PENDING,
    SALE_TYPES,
    SaleOrder,
    SaleOrderItem,
)
from fishtrade.schemas.sale_order import SaleOrderCreate, SaleOrderQuery, SaleOrderUpdateIn
from fishtrade.services.inventory_service import apply_stock_change
from fishtrade.services.order_common import (
    PricedLine,
    checked_money,
    ensure_transition_allowed,
    lines_subtotal,
    normalize_status,
    price_lines,
)
from fishtrade.services.partner_service import customer_names, resolve_customer_id
from fishtrade.services.stock_validation_service import ensure_available

logger = logging.getLogger("fishtrade.orders")

ALLOWED_SALE_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "completed", "cancelled"},
    "processing": {"completed", "cancelled"},
    "completed": {"cancelled"},
    "cancelled": {"pending", "processing", "completed"},
}
INITIAL_SALE_STATUSES = ("pending", "processing", "completed")


@dataclass
class SaleOrderDetail:
    order: SaleOrder
    items: list[SaleOrderItem]
    customer_name: str


def _log_event(event: str, order: SaleOrder, actor_id: str, **extra) -> None:
    logger.info(
        json.dumps(
            {
                "event": event,
                "request_id": get_request_id(),
                "order_id": order.id,
                "order_number": order.order_number,
                "status": order.status,
                "actor_id": actor_id,
                **extra,
            },
            default=str,
        )
    )


def _load_order(db: Session, order_id: str, *, lock: bool = False) -> SaleOrder:
    stmt = select(SaleOrder).where(SaleOrder.id == order_id)
    if lock:
        stmt = lock_for_update(stmt).execution_options(populate_existing=True)
    order = db.execute(stmt).scalar_one_or_none()
    if order is None:
        raise NotFoundError("sale_order", order_id)
    return order


def _load_items(db: Session, order_id: str) -> list[SaleOrderItem]:
    rows = db.execute(
        select(SaleOrderItem)
        .where(SaleOrderItem.sale_order_id == order_id)
        .order_by(SaleOrderItem.line_number.asc())
    ).scalars().all()
    return list(rows)


def _order_totals(lines: Sequence[PricedLine], discount_amount: Decimal | None) -> tuple[Decimal, Decimal, Decimal]:
    subtotal = lines_subtotal(lines)
    discount = checked_money(
        discount_amount if discount_amount is not None else ZERO_MONEY, field="discount_amount"
    )
    if discount < 0:
        raise OrderValidationError("discount_amount cannot be negative", field="discount_amount")
    if discount > subtotal:
        raise OrderValidationError(
            f"discount_amount {discount} cannot exceed subtotal {subtotal}",
            field="discount_amount",
        )
    return subtotal, discount, to_money(subtotal - discount)


def _add_items(db: Session, order: SaleOrder, lines: Sequence[PricedLine]) -> list[SaleOrderItem]:
    items = [
        SaleOrderItem(
            id=generate_id(),
            sale_order_id=order.id,
            line_number=line.line_number,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        for line in lines
    ]
    db.add_all(items)
    return items


def _deduct(
    db: Session,
    order: SaleOrder,
    lines: Sequence[PricedLine | SaleOrderItem],
    *,
    actor_id: str,
    reference_type: str,
) -> None:
    ensure_available(db, lines, lock=True, order_id=order.id)
    for line in sorted(lines, key=lambda item: (item.product_id, item.line_number)):
        apply_stock_change(
            db,
            product_id=line.product_id,
            delta=-line.quantity,
            log_type=LOG_TYPE_SALE,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=order.id,
            note=f"Sale order {order.order_number}",
        )


def _restore(
    db: Session,
    order: SaleOrder,
    items: Sequence[SaleOrderItem],
    *,
    actor_id: str,
    reference_type: str,
    note: str,
) -> None:
    for item in sorted(items, key=lambda line: (line.product_id, line.line_number)):
        apply_stock_change(
            db,
            product_id=item.product_id,
            delta=item.quantity,
            log_type=LOG_TYPE_ADJUSTMENT,
            actor_id=actor_id,
            reference_type=reference_type,
            reference_id=order.id,
            note=note,
        )


def _details(db: Session, orders: Sequence[SaleOrder]) -> list[SaleOrderDetail]:
    if not orders:
        return []
    order_ids = [order.id for order in orders]
    items_by_order: dict[str, list[SaleOrderItem]] = {order_id: [] for order_id in order_ids}
    rows = db.execute(
        select(SaleOrderItem)
        .where(SaleOrderItem.sale_order_id.in_(order_ids))
        .order_by(SaleOrderItem.sale_order_id.asc(), SaleOrderItem.line_number.asc())
    ).scalars().all()
    for item in rows:
        items_by_order[item.sale_order_id].append(item)

    names = customer_names(db, {order.customer_id for order in orders if order.customer_id})
    return [
        SaleOrderDetail(
            order=order,
            items=items_by_order[order.id],
            customer_name=names.get(order.customer_id, settings.walk_in_customer_name)
            if order.customer_id
            else settings.walk_in_customer_name,
        )
        for order in orders
    ]


def _detail(db: Session, order: SaleOrder) -> SaleOrderDetail:
    return _details(db, [order])[0]


def create_sale_order(db: Session, *, payload: SaleOrderCreate, actor_id: str) -> SaleOrderDetail:
    status = normalize_status(payload.status, SALE_ORDER_STATUSES, entity_type="sale_order")
    if status not in INITIAL_SALE_STATUSES:
        raise OrderValidationError(
            f"A sale order cannot be created as '{status}'. Allowed: {', '.join(INITIAL_SALE_STATUSES)}",
            field="status",
        )
    if payload.sale_type not in SALE_TYPES:
        raise OrderValidationError(
            f"Invalid sale_type. Allowed: {', '.join(SALE_TYPES)}", field="sale_type"
        )
    lines = price_lines(payload.items)
    subtotal, discount, total = _order_totals(lines, payload.discount_amount)

    with atomic(db, operation="sale_order.create"):
        # Fail on stock before anything is written.
        ensure_available(db, lines, lock=True)
        customer_id = resolve_customer_id(
            db, customer_id=payload.customer_id, customer_name=payload.customer_name
        )
        order = SaleOrder(
            id=generate_id(),
            order_number=generate_order_number("INV"),
            customer_id=customer_id,
            order_date=payload.order_date or utcnow().date(),
            status=status,
            sale_type=payload.sale_type,
            payment_method=payload.payment_method,
            subtotal=subtotal,
            discount_amount=discount,
            total_amount=total,
            notes=payload.notes,
            created_by=actor_id,
        )
        db.add(order)
        db.flush()
        _add_items(db, order, lines)
        _deduct(db, order, lines, actor_id=actor_id, reference_type=REF_SALE_ORDER)

    _log_event(
        "sale_order.create",
        order,
        actor_id,
        item_count=len(lines),
        total_amount=str(total),
    )
    return _detail(db, order)


def cancel_sale_order(db: Session, *, order_id: str, actor_id: str) -> SaleOrderDetail:
    with atomic(db, operation="sale_order.cancel"):
        order = _load_order(db, order_id, lock=True)
        if order.status == SALE_STATUS_CANCELLED:
            raise InvalidTransitionError(
                entity_type="sale_order",
                entity_id=order.id,
                current_status=order.status,
                requested_status=SALE_STATUS_CANCELLED,
                reason="order is already cancelled",
            )
        previous_status = order.status
        items = _load_items(db, order.id)
        _restore(
            db,
            order,
            items,
            actor_id=actor_id,
            reference_type=REF_SALE_ORDER_CANCEL,
            note=f"Sale order {order.order_number} cancelled",
        )
        order.status = SALE_STATUS_CANCELLED

    _log_event("sale_order.cancel", order, actor_id, from_status=previous_status, restored_items=len(items))
    return _detail(db, order)


def update_sale_order_status(
    db: Session, *, order_id: str, status: str, actor_id: str
) -> SaleOrderDetail:
    next_status = normalize_status(status, SALE_ORDER_STATUSES, entity_type="sale_order")
    if next_status == SALE_STATUS_CANCELLED:
        return cancel_sale_order(db, order_id=order_id, actor_id=actor_id)

    with atomic(db, operation="sale_order.status"):
        order = _load_order(db, order_id, lock=True)
        previous_status = order.status
        if previous_status == next_status:
            return _detail(db, order)
        ensure_transition_allowed(
            ALLOWED_SALE_TRANSITIONS,
            entity_type="sale_order",
            entity_id=order.id,
            current_status=previous_status,
            next_status=next_status,
        )
        reactivated = previous_status == SALE_STATUS_CANCELLED
        if reactivated:
            _deduct(db, order, _load_items(db, order.id), actor_id=actor_id, reference_type=REF_SALE_ORDER)
        order.status = next_status

    _log_event(
        "sale_order.status",
        order,
        actor_id,
        from_status=previous_status,
        to_status=next_status,
        reactivated=reactivated,
    )
    return _detail(db, order)


def update_sale_order_fields(
    db: Session, *, order_id: str, changes: SaleOrderUpdateIn, actor_id: str
) -> SaleOrderDetail:
    fields = changes.model_fields_set
    with atomic(db, operation="sale_order.update"):
        order = _load_order(db, order_id, lock=True)
        if "customer_id" in fields or "customer_name" in fields:
            order.customer_id = resolve_customer_id(
                db, customer_id=changes.customer_id, customer_name=changes.customer_name
            )
        if "notes" in fields:
            order.notes = changes.notes
        if "payment_method" in fields:
            order.payment_method = changes.payment_method

    _log_event("sale_order.update", order, actor_id, fields=sorted(fields))
    return _detail(db, order)


def replace_sale_order_items(
    db: Session,
    *,
    order_id: str,
    items: Sequence,
    actor_id: str,
    discount_amount: Decimal | None = None,
) -> SaleOrderDetail:
    lines = price_lines(items)
    with atomic(db, operation="sale_order.edit"):
        order = _load_order(db, order_id, lock=True)
        if order.status == SALE_STATUS_COMPLETED:
            raise InvalidTransitionError(
                entity_type="sale_order",
                entity_id=order.id,
                current_status=order.status,
                requested_status="edited",
                reason="items of a completed order cannot be changed",
            )
        subtotal, discount, total = _order_totals(
            lines, discount_amount if discount_amount is not None else order.discount_amount
        )
        old_items = _load_items(db, order.id)
        holds_stock = order.status != SALE_STATUS_CANCELLED
        if holds_stock:
            _restore(
                db,
                order,
                old_items,
                actor_id=actor_id,
                reference_type=REF_SALE_ORDER_EDIT,
                note=f"Sale order {order.order_number} items replaced",
            )
        for item in old_items:
            db.delete(item)
        db.flush()

        _add_items(db, order, lines)
        if holds_stock:
            _deduct(db, order, lines, actor_id=actor_id, reference_type=REF_SALE_ORDER_EDIT)
        order.subtotal = subtotal
        order.discount_amount = discount
        order.total_amount = total

    _log_event(
        "sale_order.edit",
        order,
        actor_id,
        item_count=len(lines),
        total_amount=str(total),
        stock_moved=holds_stock,
    )
    return _detail(db, order)


def delete_sale_order(db: Session, *, order_id: str, actor_id: str) -> None:
    with atomic(db, operation="sale_order.delete"):
        order = _load_order(db, order_id, lock=True)
        if order.status != SALE_STATUS_PENDING:
            raise InvalidTransitionError(
                entity_type="sale_order",
                entity_id=order.id,
                current_status=order.status,
                requested_status="deleted",
                reason="only pending orders can be deleted",
            )
        items = _load_items(db, order.id)
        _restore(
            db,
            order,
            items,
            actor_id=actor_id,
            reference_type=REF_SALE_ORDER_DELETE,
            note=f"Sale order {order.order_number} deleted",
        )
        for item in items:
            db.delete(item)
        db.flush()
        db.delete(order)
        order_number = order.order_number

    logger.info(
        json.dumps(
            {
                "event": "sale_order.delete",
                "request_id": get_request_id(),
                "order_id": order_id,
                "order_number": order_number,
                "actor_id": actor_id,
            }
        )
    )


def get_sale_order(db: Session, order_id: str) -> SaleOrderDetail:
    return _detail(db, _load_order(db, order_id))


def list_sale_orders(db: Session, query: SaleOrderQuery) -> tuple[list[SaleOrderDetail], int]:
    stmt = select(SaleOrder)
    if query.status:
        stmt = stmt.where(
            SaleOrder.status == normalize_status(query.status, SALE_ORDER_STATUSES, entity_type="sale_order")
        )
    if query.customer_id:
        stmt = stmt.where(SaleOrder.customer_id == query.customer_id)
    if query.sale_type:
        stmt = stmt.where(SaleOrder.sale_type == query.sale_type)
    if query.start_date:
        stmt = stmt.where(SaleOrder.order_date >= query.start_date)
    if query.end_date:
        stmt = stmt.where(SaleOrder.order_date <= query.end_date)

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    orders = db.execute(
        stmt.order_by(SaleOrder.order_date.desc(), SaleOrder.created_at.desc(), SaleOrder.id.desc())
        .offset(query.offset)
        .limit(query.limit)
    ).scalars().all()
    return _details(db, orders), total
