from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_db
from fishtrade.routers.inventory import inventory_log_query
from fishtrade.schemas.inventory import InventoryLogQuery
from fishtrade.schemas.report import (
    InventoryRiskItemOut,
    InventoryRiskOut,
    LossRateOut,
    MovementProductOut,
    MovementSummaryOut,
    MovementTypeOut,
)
from fishtrade.services import report_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/inventory-risk",
    response_model=InventoryRiskOut,
    summary="Stock ageing and loss risk per product",
    responses=error_responses(500),
)
def get_inventory_risk(db: Session = Depends(get_db)):
    risk = report_service.get_inventory_risk(db)
    return InventoryRiskOut(
        overall_loss_rate=float(risk.overall_loss_rate),
        items=[
            InventoryRiskItemOut(
                product_id=item.product_id,
                sku=item.sku,
                name=item.name,
                quantity=float(item.quantity),
                days_in_stock=item.days_in_stock,
                risk_level=item.risk_level,
                total_imported=float(item.total_imported),
                total_losses=float(item.total_losses),
                loss_rate=float(item.loss_rate),
                estimated_loss_value=float(item.estimated_loss_value),
                last_updated=item.last_updated,
            )
            for item in risk.items
        ],
    )


@router.get(
    "/loss-rate",
    response_model=LossRateOut,
    summary="Dead-loss rate over a date range",
    responses=error_responses(422, 500),
)
def get_loss_rate(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    result = report_service.get_loss_rate(db, start_date=start_date, end_date=end_date)
    return LossRateOut(
        start_date=result.start_date,
        end_date=result.end_date,
        total_imported=float(result.total_imported),
        total_losses=float(result.total_losses),
        loss_rate=float(result.loss_rate),
    )


@router.get(
    "/movements",
    response_model=MovementSummaryOut,
    summary="Net stock movement by type and product",
    responses=error_responses(422, 500),
)
def get_movement_summary(
    query: InventoryLogQuery = Depends(inventory_log_query),
    db: Session = Depends(get_db),
):
    summary = report_service.get_movement_summary(db, query)
    return MovementSummaryOut(
        by_type=[
            MovementTypeOut(type=total.key, entry_count=total.entry_count, net_change=float(total.net_change))
            for total in summary.by_type
        ],
        by_product=[
            MovementProductOut(
                product_id=total.key, entry_count=total.entry_count, net_change=float(total.net_change)
            )
            for total in summary.by_product
        ],
    )
