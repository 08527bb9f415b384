"""
Read-only views over products, inventory records and the inventory log.

Nothing here writes. Quantities come back as Decimals; the routers decide
how to render them.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from fishtrade.core.config import settings
from fishtrade.core.errors import OrderValidationError
from fishtrade.core.money import ZERO_MONEY, ZERO_QUANTITY, percentage, to_money, to_quantity
from fishtrade.core.time_utils import day_start, days_between, next_day_start, utcnow
from fishtrade.models.inventory import (
    LOG_TYPE_IMPORT,
    LOG_TYPE_LOSS,
    InventoryLogEntry,
    InventoryRecord,
)
from fishtrade.models.product import Product
from fishtrade.schemas.inventory import InventoryLogQuery

STOCK_IN = "In Stock"
STOCK_LOW = "Low Stock"
STOCK_OUT = "Out of Stock"

RISK_HIGH = "HIGH"
RISK_MEDIUM = "MEDIUM"
RISK_LOW = "LOW"
_RISK_ORDER = {RISK_HIGH: 0, RISK_MEDIUM: 1, RISK_LOW: 2}


@dataclass(frozen=True)
class InventoryLevel:
    product_id: str
    sku: str
    name: str
    unit: str
    quantity: Decimal
    min_stock: Decimal
    stock_status: str
    last_updated: datetime | None


@dataclass(frozen=True)
class InventorySummary:
    total_products: int
    total_units: Decimal
    total_value: Decimal
    low_stock_count: int
    out_of_stock_count: int


@dataclass(frozen=True)
class InventoryRiskItem:
    product_id: str
    sku: str
    name: str
    quantity: Decimal
    days_in_stock: int
    risk_level: str
    total_imported: Decimal
    total_losses: Decimal
    loss_rate: Decimal
    estimated_loss_value: Decimal
    last_updated: datetime | None


@dataclass(frozen=True)
class InventoryRisk:
    overall_loss_rate: Decimal
    items: list[InventoryRiskItem]


@dataclass(frozen=True)
class LossRate:
    start_date: date | None
    end_date: date | None
    total_imported: Decimal
    total_losses: Decimal
    loss_rate: Decimal


@dataclass(frozen=True)
class MovementTotal:
    key: str
    entry_count: int
    net_change: Decimal


@dataclass(frozen=True)
class MovementSummary:
    by_type: list[MovementTotal]
    by_product: list[MovementTotal]


@dataclass(frozen=True)
class ReconciliationMismatch:
    product_id: str
    record_quantity: Decimal
    log_total: Decimal
    latest_quantity_after: Decimal | None


@dataclass(frozen=True)
class ReconciliationReport:
    checked_products: int
    mismatches: list[ReconciliationMismatch]

    @property
    def ok(self) -> bool:
        return not self.mismatches


def stock_status(quantity: Decimal, min_stock: Decimal) -> str:
    if quantity <= 0:
        return STOCK_OUT
    if quantity <= min_stock:
        return STOCK_LOW
    return STOCK_IN


def risk_level(days_in_stock: int) -> str:
    if days_in_stock > settings.risk_high_days:
        return RISK_HIGH
    if days_in_stock > settings.risk_medium_days:
        return RISK_MEDIUM
    return RISK_LOW


def _apply_log_filters(stmt, query: InventoryLogQuery):
    if query.start_date and query.end_date and query.start_date > query.end_date:
        raise OrderValidationError("start_date cannot be after end_date", field="start_date")
    if query.product_id:
        stmt = stmt.where(InventoryLogEntry.product_id == query.product_id)
    if query.type:
        stmt = stmt.where(InventoryLogEntry.type == query.type)
    if query.reference_type:
        stmt = stmt.where(InventoryLogEntry.reference_type == query.reference_type)
    if query.reference_id:
        stmt = stmt.where(InventoryLogEntry.reference_id == query.reference_id)
    if query.start_date:
        stmt = stmt.where(InventoryLogEntry.created_at >= day_start(query.start_date))
    if query.end_date:
        stmt = stmt.where(InventoryLogEntry.created_at < next_day_start(query.end_date))
    return stmt


def _page_limit(requested: int | None) -> int:
    if requested is None:
        return settings.inventory_log_default_limit
    return min(requested, settings.inventory_log_max_limit)


def list_inventory_logs(db: Session, query: InventoryLogQuery) -> tuple[list[InventoryLogEntry], int, int]:
    """Newest first. Returns (entries, total matching, applied limit)."""
    stmt = _apply_log_filters(select(InventoryLogEntry), query)
    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    limit = _page_limit(query.limit)
    rows = db.execute(
        stmt.order_by(
            InventoryLogEntry.created_at.desc(),
            InventoryLogEntry.sequence.desc(),
            InventoryLogEntry.id.desc(),
        )
        .offset(query.offset)
        .limit(limit)
    ).scalars().all()
    return list(rows), total, limit


def list_loss_logs(db: Session, query: InventoryLogQuery) -> tuple[list[InventoryLogEntry], int, int]:
    return list_inventory_logs(db, query.model_copy(update={"type": LOG_TYPE_LOSS}))


def _stock_rows(db: Session):
    return db.execute(
        select(Product, InventoryRecord.quantity, InventoryRecord.last_updated)
        .outerjoin(InventoryRecord, InventoryRecord.product_id == Product.id)
        .where(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
    ).all()


def list_inventory_levels(db: Session, *, status: str | None = None) -> list[InventoryLevel]:
    levels: list[InventoryLevel] = []
    for product, quantity, last_updated in _stock_rows(db):
        on_hand = to_quantity(quantity) if quantity is not None else ZERO_QUANTITY
        min_stock = to_quantity(product.min_stock or 0)
        label = stock_status(on_hand, min_stock)
        if status and label != status:
            continue
        levels.append(
            InventoryLevel(
                product_id=product.id,
                sku=product.sku,
                name=product.name,
                unit=product.unit,
                quantity=on_hand,
                min_stock=min_stock,
                stock_status=label,
                last_updated=last_updated,
            )
        )
    return levels


def get_inventory_summary(db: Session) -> InventorySummary:
    total_products = 0
    total_units = ZERO_QUANTITY
    total_value = ZERO_MONEY
    low_stock_count = 0
    out_of_stock_count = 0
    for product, quantity, _ in _stock_rows(db):
        on_hand = to_quantity(quantity) if quantity is not None else ZERO_QUANTITY
        total_products += 1
        total_units += on_hand
        if product.cost_price is not None:
            total_value += on_hand * product.cost_price
        label = stock_status(on_hand, to_quantity(product.min_stock or 0))
        if label == STOCK_OUT:
            out_of_stock_count += 1
        elif label == STOCK_LOW:
            low_stock_count += 1
    return InventorySummary(
        total_products=total_products,
        total_units=total_units,
        total_value=to_money(total_value),
        low_stock_count=low_stock_count,
        out_of_stock_count=out_of_stock_count,
    )


def _movement_totals(db: Session, *, start_date: date | None = None, end_date: date | None = None):
    """Imported and lost units per product: {product_id: (imported, lost)}."""
    stmt = select(
        InventoryLogEntry.product_id,
        InventoryLogEntry.type,
        func.coalesce(func.sum(InventoryLogEntry.quantity_change), 0),
    ).where(InventoryLogEntry.type.in_((LOG_TYPE_IMPORT, LOG_TYPE_LOSS)))
    stmt = _apply_log_filters(stmt, InventoryLogQuery(start_date=start_date, end_date=end_date))
    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for product_id, log_type, change in db.execute(
        stmt.group_by(InventoryLogEntry.product_id, InventoryLogEntry.type)
    ).all():
        imported, lost = totals.get(product_id, (ZERO_QUANTITY, ZERO_QUANTITY))
        amount = abs(to_quantity(change))
        if log_type == LOG_TYPE_IMPORT:
            imported += amount
        else:
            lost += amount
        totals[product_id] = (imported, lost)
    return totals


def get_inventory_risk(db: Session, *, now: datetime | None = None) -> InventoryRisk:
    moment = now or utcnow()
    totals = _movement_totals(db)
    items: list[InventoryRiskItem] = []
    for product, quantity, last_updated in _stock_rows(db):
        on_hand = to_quantity(quantity) if quantity is not None else ZERO_QUANTITY
        if on_hand <= 0:
            continue
        days = days_between(last_updated, moment) if last_updated is not None else 0
        imported, lost = totals.get(product.id, (ZERO_QUANTITY, ZERO_QUANTITY))
        cost = product.cost_price if product.cost_price is not None else ZERO_MONEY
        items.append(
            InventoryRiskItem(
                product_id=product.id,
                sku=product.sku,
                name=product.name,
                quantity=on_hand,
                days_in_stock=days,
                risk_level=risk_level(days),
                total_imported=imported,
                total_losses=lost,
                loss_rate=percentage(lost, imported),
                estimated_loss_value=to_money(on_hand * cost),
                last_updated=last_updated,
            )
        )
    items.sort(key=lambda item: (_RISK_ORDER[item.risk_level], -item.estimated_loss_value, item.name))

    all_imported = sum((imported for imported, _ in totals.values()), ZERO_QUANTITY)
    all_lost = sum((lost for _, lost in totals.values()), ZERO_QUANTITY)
    return InventoryRisk(overall_loss_rate=percentage(all_lost, all_imported), items=items)


def get_loss_rate(db: Session, *, start_date: date | None = None, end_date: date | None = None) -> LossRate:
    if start_date and end_date and start_date > end_date:
        raise OrderValidationError("start_date cannot be after end_date", field="start_date")
    totals = _movement_totals(db, start_date=start_date, end_date=end_date)
    imported = sum((value for value, _ in totals.values()), ZERO_QUANTITY)
    lost = sum((value for _, value in totals.values()), ZERO_QUANTITY)
    return LossRate(
        start_date=start_date,
        end_date=end_date,
        total_imported=imported,
        total_losses=lost,
        loss_rate=percentage(lost, imported),
    )


def get_movement_summary(db: Session, query: InventoryLogQuery) -> MovementSummary:
    count = func.count(InventoryLogEntry.id)
    net = func.coalesce(func.sum(InventoryLogEntry.quantity_change), 0)

    type_stmt = _apply_log_filters(select(InventoryLogEntry.type, count, net), query)
    by_type = [
        MovementTotal(key=log_type, entry_count=int(entries), net_change=to_quantity(change))
        for log_type, entries, change in db.execute(
            type_stmt.group_by(InventoryLogEntry.type).order_by(InventoryLogEntry.type.asc())
        ).all()
    ]

    product_stmt = _apply_log_filters(select(InventoryLogEntry.product_id, count, net), query)
    by_product = [
        MovementTotal(key=product_id, entry_count=int(entries), net_change=to_quantity(change))
        for product_id, entries, change in db.execute(
            product_stmt.group_by(InventoryLogEntry.product_id).order_by(InventoryLogEntry.product_id.asc())
        ).all()
    ]
    return MovementSummary(by_type=by_type, by_product=by_product)


def check_reconciliation(db: Session, *, product_id: str | None = None) -> ReconciliationReport:
    """
    Compare each stored quantity with its log.

    A product reconciles when the summed ``quantity_change`` and the
    ``quantity_after`` of its highest-sequence entry both equal the record.
    Products with neither a record nor log entries are skipped.
    """
    sums_stmt = select(
        InventoryLogEntry.product_id,
        func.coalesce(func.sum(InventoryLogEntry.quantity_change), 0),
    ).group_by(InventoryLogEntry.product_id)
    latest = (
        select(
            InventoryLogEntry.product_id.label("product_id"),
            func.max(InventoryLogEntry.sequence).label("max_sequence"),
        )
        .group_by(InventoryLogEntry.product_id)
        .subquery()
    )
    latest_stmt = select(InventoryLogEntry.product_id, InventoryLogEntry.quantity_after).join(
        latest,
        and_(
            InventoryLogEntry.product_id == latest.c.product_id,
            InventoryLogEntry.sequence == latest.c.max_sequence,
        ),
    )
    records_stmt = select(InventoryRecord.product_id, InventoryRecord.quantity)
    if product_id:
        sums_stmt = sums_stmt.where(InventoryLogEntry.product_id == product_id)
        latest_stmt = latest_stmt.where(InventoryLogEntry.product_id == product_id)
        records_stmt = records_stmt.where(InventoryRecord.product_id == product_id)

    log_totals = {pid: to_quantity(total) for pid, total in db.execute(sums_stmt).all()}
    latest_after = {pid: to_quantity(after) for pid, after in db.execute(latest_stmt).all()}
    records = {pid: to_quantity(quantity) for pid, quantity in db.execute(records_stmt).all()}

    product_ids = sorted(set(records) | set(log_totals))
    mismatches: list[ReconciliationMismatch] = []
    for pid in product_ids:
        record_quantity = records.get(pid, ZERO_QUANTITY)
        log_total = log_totals.get(pid, ZERO_QUANTITY)
        latest_quantity = latest_after.get(pid)
        chain_end = latest_quantity if latest_quantity is not None else ZERO_QUANTITY
        if log_total != record_quantity or chain_end != record_quantity:
            mismatches.append(
                ReconciliationMismatch(
                    product_id=pid,
                    record_quantity=record_quantity,
                    log_total=log_total,
                    latest_quantity_after=latest_quantity,
                )
            )
    return ReconciliationReport(checked_products=len(product_ids), mismatches=mismatches)
