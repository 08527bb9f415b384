from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_actor_id, get_db
from fishtrade.core.money import to_money
from fishtrade.schemas.common import pagination_meta
from fishtrade.schemas.import_order import (
    ImportOrderCreate,
    ImportOrderItemOut,
    ImportOrderItemsReplaceIn,
    ImportOrderListOut,
    ImportOrderOut,
    ImportOrderQuery,
    ImportOrderStatusUpdateIn,
)
from fishtrade.services import import_order_service
from fishtrade.services.import_order_service import ImportOrderDetail

router = APIRouter(prefix="/import-orders", tags=["import-orders"])


def _import_order_out(detail: ImportOrderDetail) -> ImportOrderOut:
    order = detail.order
    return ImportOrderOut(
        id=order.id,
        order_number=order.order_number,
        supplier_id=order.supplier_id,
        supplier_name=detail.supplier_name,
        order_date=order.order_date,
        expected_delivery=order.expected_delivery,
        delivery_date=order.delivery_date,
        status=order.status,
        total_amount=float(to_money(order.total_amount)),
        notes=order.notes,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            ImportOrderItemOut(
                id=item.id,
                product_id=item.product_id,
                quantity=float(item.quantity),
                unit_price=float(to_money(item.unit_price)),
                total_price=float(to_money(item.total_price)),
                batch_id=item.batch_id,
            )
            for item in detail.items
        ],
    )


def import_order_query(
    status: str | None = Query(default=None),
    supplier_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ImportOrderQuery:
    return ImportOrderQuery(
        status=status,
        supplier_id=supplier_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=ImportOrderOut,
    status_code=201,
    summary="Create import order",
    responses=error_responses(404, 422, 500, 503),
)
def create_import_order(
    payload: ImportOrderCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _import_order_out(import_order_service.create_import_order(db, payload=payload, actor_id=actor_id))


@router.get(
    "",
    response_model=ImportOrderListOut,
    summary="List import orders",
    responses=error_responses(422, 500),
)
def list_import_orders(
    query: ImportOrderQuery = Depends(import_order_query),
    db: Session = Depends(get_db),
):
    details, total = import_order_service.list_import_orders(db, query)
    return ImportOrderListOut(
        items=[_import_order_out(detail) for detail in details],
        pagination=pagination_meta(total=total, limit=query.limit, offset=query.offset, count=len(details)),
    )


@router.get(
    "/{order_id}",
    response_model=ImportOrderOut,
    summary="Get import order",
    responses=error_responses(404, 500),
)
def get_import_order(order_id: str, db: Session = Depends(get_db)):
    return _import_order_out(import_order_service.get_import_order(db, order_id))


@router.patch(
    "/{order_id}/status",
    response_model=ImportOrderOut,
    summary="Change import order status; delivery credits stock",
    responses=error_responses(404, 409, 422, 500, 503),
)
def update_import_order_status(
    order_id: str,
    payload: ImportOrderStatusUpdateIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    detail = import_order_service.update_import_order_status(
        db,
        order_id=order_id,
        status=payload.status,
        actor_id=actor_id,
        delivery_date=payload.delivery_date,
        total_amount=payload.total_amount,
    )
    return _import_order_out(detail)


@router.put(
    "/{order_id}/items",
    response_model=ImportOrderOut,
    summary="Replace the lines of a pending import order",
    responses=error_responses(404, 409, 422, 500, 503),
)
def replace_import_order_items(
    order_id: str,
    payload: ImportOrderItemsReplaceIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    detail = import_order_service.replace_import_order_items(
        db, order_id=order_id, items=payload.items, actor_id=actor_id
    )
    return _import_order_out(detail)


@router.delete(
    "/{order_id}",
    status_code=204,
    summary="Delete a pending import order",
    responses=error_responses(404, 409, 500, 503),
)
def delete_import_order(
    order_id: str,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    import_order_service.delete_import_order(db, order_id=order_id, actor_id=actor_id)
    return Response(status_code=204)
