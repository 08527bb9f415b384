from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_actor_id, get_db
from fishtrade.models.inventory import InventoryLogEntry
from fishtrade.schemas.common import pagination_meta
from fishtrade.schemas.inventory import (
    InventoryLevelListOut,
    InventoryLevelOut,
    InventoryLogEntryOut,
    InventoryLogListOut,
    InventoryLogQuery,
    InventoryLogType,
    InventoryRecordOut,
    InventorySummaryOut,
    ReconciliationMismatchOut,
    ReconciliationOut,
    StockAdjustIn,
    StockChangeOut,
    StockLossIn,
    StockStatus,
)
from fishtrade.services import inventory_service, report_service
from fishtrade.services.inventory_service import LedgerAdjustment

router = APIRouter(prefix="/inventory", tags=["inventory"])


def inventory_log_query(
    product_id: str | None = Query(default=None),
    type: InventoryLogType | None = Query(default=None),
    reference_type: str | None = Query(default=None),
    reference_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
) -> InventoryLogQuery:
    return InventoryLogQuery(
        product_id=product_id,
        type=type,
        reference_type=reference_type,
        reference_id=reference_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


def log_entry_out(entry: InventoryLogEntry) -> InventoryLogEntryOut:
    return InventoryLogEntryOut(
        id=entry.id,
        product_id=entry.product_id,
        sequence=entry.sequence,
        type=entry.type,
        quantity_change=float(entry.quantity_change),
        quantity_before=float(entry.quantity_before),
        quantity_after=float(entry.quantity_after),
        reference_type=entry.reference_type,
        reference_id=entry.reference_id,
        loss_reason=entry.loss_reason,
        note=entry.note,
        actor_id=entry.actor_id,
        created_at=entry.created_at,
    )


def _change_out(adjustment: LedgerAdjustment) -> StockChangeOut:
    return StockChangeOut(
        product_id=adjustment.product_id,
        quantity_before=float(adjustment.quantity_before),
        quantity_after=float(adjustment.quantity_after),
        log_entry_id=adjustment.entry.id if adjustment.entry is not None else None,
        last_updated=adjustment.record.last_updated if adjustment.record is not None else None,
    )


def _log_list_out(result: tuple[list[InventoryLogEntry], int, int], offset: int) -> InventoryLogListOut:
    entries, total, limit = result
    return InventoryLogListOut(
        items=[log_entry_out(entry) for entry in entries],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(entries)),
    )


@router.get(
    "",
    response_model=InventoryLevelListOut,
    summary="List stock levels for active products",
    responses=error_responses(422, 500),
)
def list_inventory_levels(
    stock_status: StockStatus | None = Query(default=None),
    db: Session = Depends(get_db),
):
    levels = report_service.list_inventory_levels(db, status=stock_status)
    return InventoryLevelListOut(
        items=[
            InventoryLevelOut(
                product_id=level.product_id,
                sku=level.sku,
                name=level.name,
                unit=level.unit,
                quantity=float(level.quantity),
                min_stock=float(level.min_stock),
                stock_status=level.stock_status,
                last_updated=level.last_updated,
            )
            for level in levels
        ]
    )


@router.get(
    "/summary",
    response_model=InventorySummaryOut,
    summary="Inventory totals and stock alerts",
    responses=error_responses(500),
)
def get_inventory_summary(db: Session = Depends(get_db)):
    summary = report_service.get_inventory_summary(db)
    return InventorySummaryOut(
        total_products=summary.total_products,
        total_units=float(summary.total_units),
        total_value=float(summary.total_value),
        low_stock_count=summary.low_stock_count,
        out_of_stock_count=summary.out_of_stock_count,
    )


@router.get(
    "/logs",
    response_model=InventoryLogListOut,
    summary="List inventory log entries",
    responses=error_responses(422, 500),
)
def list_inventory_logs(
    query: InventoryLogQuery = Depends(inventory_log_query),
    db: Session = Depends(get_db),
):
    return _log_list_out(report_service.list_inventory_logs(db, query), query.offset)


@router.get(
    "/losses",
    response_model=InventoryLogListOut,
    summary="List recorded stock losses",
    responses=error_responses(422, 500),
)
def list_loss_logs(
    query: InventoryLogQuery = Depends(inventory_log_query),
    db: Session = Depends(get_db),
):
    return _log_list_out(report_service.list_loss_logs(db, query), query.offset)


@router.get(
    "/reconciliation",
    response_model=ReconciliationOut,
    summary="Check stored quantities against the inventory log",
    responses=error_responses(500),
)
def check_reconciliation(
    product_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    report = report_service.check_reconciliation(db, product_id=product_id)
    return ReconciliationOut(
        ok=report.ok,
        checked_products=report.checked_products,
        mismatches=[
            ReconciliationMismatchOut(
                product_id=mismatch.product_id,
                record_quantity=float(mismatch.record_quantity),
                log_total=float(mismatch.log_total),
                latest_quantity_after=(
                    float(mismatch.latest_quantity_after)
                    if mismatch.latest_quantity_after is not None
                    else None
                ),
            )
            for mismatch in report.mismatches
        ],
    )


@router.get(
    "/{product_id}",
    response_model=InventoryRecordOut,
    summary="Get the stock record for a product",
    responses=error_responses(404, 500),
)
def get_inventory_record(product_id: str, db: Session = Depends(get_db)):
    record = inventory_service.get_inventory_record(db, product_id)
    if record is None:
        return InventoryRecordOut(product_id=product_id, quantity=0.0, version=0, last_updated=None)
    return InventoryRecordOut(
        product_id=record.product_id,
        quantity=float(record.quantity),
        version=record.version,
        last_updated=record.last_updated,
    )


@router.post(
    "/adjust",
    response_model=StockChangeOut,
    summary="Manual stock adjustment or stock count",
    responses=error_responses(404, 409, 422, 500, 503),
)
def adjust_stock(
    payload: StockAdjustIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    adjustment = inventory_service.adjust_stock(
        db,
        product_id=payload.product_id,
        direction=payload.direction,
        quantity=payload.quantity,
        actor_id=actor_id,
        note=payload.note,
    )
    return _change_out(adjustment)


@router.post(
    "/loss",
    response_model=StockChangeOut,
    summary="Record lost or dead stock",
    responses=error_responses(404, 409, 422, 500, 503),
)
def record_loss(
    payload: StockLossIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    adjustment = inventory_service.record_loss(
        db,
        product_id=payload.product_id,
        quantity=payload.quantity,
        loss_reason=payload.loss_reason,
        actor_id=actor_id,
        note=payload.note,
    )
    return _change_out(adjustment)
