"""
Import (purchase) order lifecycle.

    pending   -> confirmed, delivered, cancelled
    confirmed -> delivered, cancelled

Delivery is the only transition that touches stock: it credits every line
once and stamps ``delivery_date``. An order that is delivered, or already
carries a delivery date, is never credited again.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fishtrade.core.errors import InvalidTransitionError, NotFoundError, OrderValidationError
from fishtrade.core.id_utils import generate_batch_id, generate_id, generate_order_number
from fishtrade.core.observability import get_request_id
from fishtrade.core.time_utils import utcnow
from fishtrade.db.transaction import atomic, lock_for_update
from fishtrade.models.import_order import (
    IMPORT_ORDER_STATUSES,
    IMPORT_STATUS_DELIVERED,
    IMPORT_STATUS_PENDING,
    ImportOrder,
    ImportOrderItem,
)
from fishtrade.models.inventory import LOG_TYPE_IMPORT, REF_IMPORT_ORDER
from fishtrade.schemas.import_order import ImportOrderCreate, ImportOrderQuery
from fishtrade.services.inventory_service import apply_stock_change, get_product
from fishtrade.services.order_common import (
    PricedLine,
    checked_money,
    ensure_transition_allowed,
    lines_subtotal,
    normalize_status,
    price_lines,
)
from fishtrade.services.partner_service import get_supplier, supplier_names

logger = logging.getLogger("fishtrade.orders")

ALLOWED_IMPORT_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "delivered", "cancelled"},
    "confirmed": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


@dataclass
class ImportOrderDetail:
    order: ImportOrder
    items: list[ImportOrderItem]
    supplier_name: str | None


def _load_order(db: Session, order_id: str, *, lock: bool = False) -> ImportOrder:
    stmt = select(ImportOrder).where(ImportOrder.id == order_id)
    if lock:
        stmt = lock_for_update(stmt).execution_options(populate_existing=True)
    order = db.execute(stmt).scalar_one_or_none()
    if order is None:
        raise NotFoundError("import_order", order_id)
    return order


def _load_items(db: Session, order_id: str) -> list[ImportOrderItem]:
    rows = db.execute(
        select(ImportOrderItem)
        .where(ImportOrderItem.import_order_id == order_id)
        .order_by(ImportOrderItem.line_number.asc())
    ).scalars().all()
    return list(rows)


def _add_items(db: Session, order: ImportOrder, lines: Sequence[PricedLine]) -> list[ImportOrderItem]:
    for line in lines:
        get_product(db, line.product_id)
    now = utcnow()
    items = [
        ImportOrderItem(
            id=generate_id(),
            import_order_id=order.id,
            line_number=line.line_number,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
            batch_id=generate_batch_id(now),
        )
        for line in lines
    ]
    db.add_all(items)
    return items


def _details(db: Session, orders: Sequence[ImportOrder]) -> list[ImportOrderDetail]:
    if not orders:
        return []
    order_ids = [order.id for order in orders]
    items_by_order: dict[str, list[ImportOrderItem]] = {order_id: [] for order_id in order_ids}
    rows = db.execute(
        select(ImportOrderItem)
        .where(ImportOrderItem.import_order_id.in_(order_ids))
        .order_by(ImportOrderItem.import_order_id.asc(), ImportOrderItem.line_number.asc())
    ).scalars().all()
    for item in rows:
        items_by_order[item.import_order_id].append(item)

    names = supplier_names(db, {order.supplier_id for order in orders})
    return [
        ImportOrderDetail(order=order, items=items_by_order[order.id], supplier_name=names.get(order.supplier_id))
        for order in orders
    ]


def _detail(db: Session, order: ImportOrder) -> ImportOrderDetail:
    return _details(db, [order])[0]


def _log_event(event: str, order: ImportOrder, actor_id: str, **extra) -> None:
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


def _ensure_pending(order: ImportOrder, action: str) -> None:
    if order.status != IMPORT_STATUS_PENDING:
        raise InvalidTransitionError(
            entity_type="import_order",
            entity_id=order.id,
            current_status=order.status,
            requested_status=action,
            reason="only pending import orders can be changed this way",
        )


def create_import_order(db: Session, *, payload: ImportOrderCreate, actor_id: str) -> ImportOrderDetail:
    lines = price_lines(payload.items)
    total = (
        checked_money(payload.total_amount, field="total_amount")
        if payload.total_amount is not None
        else lines_subtotal(lines)
    )
    if payload.expected_delivery and payload.order_date and payload.expected_delivery < payload.order_date:
        raise OrderValidationError("expected_delivery cannot be before order_date", field="expected_delivery")

    with atomic(db, operation="import_order.create"):
        supplier = get_supplier(db, payload.supplier_id)
        order = ImportOrder(
            id=generate_id(),
            order_number=generate_order_number("IMP"),
            supplier_id=supplier.id,
            order_date=payload.order_date or utcnow().date(),
            expected_delivery=payload.expected_delivery,
            status=IMPORT_STATUS_PENDING,
            total_amount=total,
            notes=payload.notes,
            created_by=actor_id,
        )
        db.add(order)
        db.flush()
        _add_items(db, order, lines)

    _log_event("import_order.create", order, actor_id, item_count=len(lines), total_amount=str(total))
    return _detail(db, order)


def update_import_order_status(
    db: Session,
    *,
    order_id: str,
    status: str,
    actor_id: str,
    delivery_date: date | None = None,
    total_amount: Decimal | None = None,
) -> ImportOrderDetail:
    next_status = normalize_status(status, IMPORT_ORDER_STATUSES, entity_type="import_order")
    if next_status != IMPORT_STATUS_DELIVERED and (delivery_date is not None or total_amount is not None):
        raise OrderValidationError(
            "delivery_date and total_amount can only be set when delivering", field="status"
        )
    invoiced_total = checked_money(total_amount, field="total_amount") if total_amount is not None else None

    with atomic(db, operation="import_order.status"):
        order = _load_order(db, order_id, lock=True)
        previous_status = order.status
        if next_status == IMPORT_STATUS_DELIVERED and (
            order.status == IMPORT_STATUS_DELIVERED or order.delivery_date is not None
        ):
            raise InvalidTransitionError(
                entity_type="import_order",
                entity_id=order.id,
                current_status=order.status,
                requested_status=next_status,
                reason="order has already been delivered",
            )
        ensure_transition_allowed(
            ALLOWED_IMPORT_TRANSITIONS,
            entity_type="import_order",
            entity_id=order.id,
            current_status=previous_status,
            next_status=next_status,
        )

        credited = 0
        if next_status == IMPORT_STATUS_DELIVERED:
            items = _load_items(db, order.id)
            for item in sorted(items, key=lambda line: (line.product_id, line.line_number)):
                apply_stock_change(
                    db,
                    product_id=item.product_id,
                    delta=item.quantity,
                    log_type=LOG_TYPE_IMPORT,
                    actor_id=actor_id,
                    reference_type=REF_IMPORT_ORDER,
                    reference_id=order.id,
                    note=f"Import order {order.order_number} batch {item.batch_id}",
                )
            credited = len(items)
            order.delivery_date = delivery_date or utcnow().date()
            if invoiced_total is not None:
                order.total_amount = invoiced_total
        order.status = next_status

    _log_event(
        "import_order.status",
        order,
        actor_id,
        from_status=previous_status,
        to_status=next_status,
        credited_items=credited,
    )
    return _detail(db, order)


def replace_import_order_items(
    db: Session,
    *,
    order_id: str,
    items: Sequence,
    actor_id: str,
    total_amount: Decimal | None = None,
) -> ImportOrderDetail:
    lines = price_lines(items)
    with atomic(db, operation="import_order.edit"):
        order = _load_order(db, order_id, lock=True)
        _ensure_pending(order, "edited")
        for item in _load_items(db, order.id):
            db.delete(item)
        db.flush()
        _add_items(db, order, lines)
        order.total_amount = (
            checked_money(total_amount, field="total_amount") if total_amount is not None else lines_subtotal(lines)
        )

    _log_event("import_order.edit", order, actor_id, item_count=len(lines))
    return _detail(db, order)


def delete_import_order(db: Session, *, order_id: str, actor_id: str) -> None:
    with atomic(db, operation="import_order.delete"):
        order = _load_order(db, order_id, lock=True)
        _ensure_pending(order, "deleted")
        order_number = order.order_number
        for item in _load_items(db, order.id):
            db.delete(item)
        db.flush()
        db.delete(order)

    logger.info(
        json.dumps(
            {
                "event": "import_order.delete",
                "request_id": get_request_id(),
                "order_id": order_id,
                "order_number": order_number,
                "actor_id": actor_id,
            }
        )
    )


def get_import_order(db: Session, order_id: str) -> ImportOrderDetail:
    return _detail(db, _load_order(db, order_id))


def list_import_orders(db: Session, query: ImportOrderQuery) -> tuple[list[ImportOrderDetail], int]:
    stmt = select(ImportOrder)
    if query.status:
        stmt = stmt.where(
            ImportOrder.status
            == normalize_status(query.status, IMPORT_ORDER_STATUSES, entity_type="import_order")
        )
    if query.supplier_id:
        stmt = stmt.where(ImportOrder.supplier_id == query.supplier_id)
    if query.start_date:
        stmt = stmt.where(ImportOrder.order_date >= query.start_date)
    if query.end_date:
        stmt = stmt.where(ImportOrder.order_date <= query.end_date)

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    orders = db.execute(
        stmt.order_by(ImportOrder.order_date.desc(), ImportOrder.created_at.desc(), ImportOrder.id.desc())
        .offset(query.offset)
        .limit(query.limit)
    ).scalars().all()
    return _details(db, orders), total
