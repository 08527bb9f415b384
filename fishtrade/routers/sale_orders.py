from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_actor_id, get_db
from fishtrade.core.money import to_money
from fishtrade.schemas.common import pagination_meta
from fishtrade.schemas.sale_order import (
    SaleOrderCreate,
    SaleOrderItemOut,
    SaleOrderItemsReplaceIn,
    SaleOrderListOut,
    SaleOrderOut,
    SaleOrderQuery,
    SaleOrderStatusUpdateIn,
    SaleOrderUpdateIn,
    SaleType,
)
from fishtrade.services import sale_order_service
from fishtrade.services.sale_order_service import SaleOrderDetail

router = APIRouter(prefix="/sale-orders", tags=["sale-orders"])


def _sale_order_out(detail: SaleOrderDetail) -> SaleOrderOut:
    order = detail.order
    return SaleOrderOut(
        id=order.id,
        order_number=order.order_number,
        customer_id=order.customer_id,
        customer_name=detail.customer_name,
        order_date=order.order_date,
        status=order.status,
        sale_type=order.sale_type,
        payment_method=order.payment_method,
        subtotal=float(to_money(order.subtotal)),
        discount_amount=float(to_money(order.discount_amount)),
        total_amount=float(to_money(order.total_amount)),
        notes=order.notes,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            SaleOrderItemOut(
                id=item.id,
                product_id=item.product_id,
                quantity=float(item.quantity),
                unit_price=float(to_money(item.unit_price)),
                total_price=float(to_money(item.total_price)),
            )
            for item in detail.items
        ],
    )


def sale_order_query(
    status: str | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    sale_type: SaleType | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> SaleOrderQuery:
    return SaleOrderQuery(
        status=status,
        customer_id=customer_id,
        sale_type=sale_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=SaleOrderOut,
    status_code=201,
    summary="Create sale order and deduct stock",
    responses=error_responses(404, 409, 422, 500, 503),
)
def create_sale_order(
    payload: SaleOrderCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _sale_order_out(sale_order_service.create_sale_order(db, payload=payload, actor_id=actor_id))


@router.get(
    "",
    response_model=SaleOrderListOut,
    summary="List sale orders",
    responses=error_responses(422, 500),
)
def list_sale_orders(
    query: SaleOrderQuery = Depends(sale_order_query),
    db: Session = Depends(get_db),
):
    details, total = sale_order_service.list_sale_orders(db, query)
    return SaleOrderListOut(
        items=[_sale_order_out(detail) for detail in details],
        pagination=pagination_meta(total=total, limit=query.limit, offset=query.offset, count=len(details)),
    )


@router.get(
    "/{order_id}",
    response_model=SaleOrderOut,
    summary="Get sale order",
    responses=error_responses(404, 500),
)
def get_sale_order(order_id: str, db: Session = Depends(get_db)):
    return _sale_order_out(sale_order_service.get_sale_order(db, order_id))


@router.patch(
    "/{order_id}",
    response_model=SaleOrderOut,
    summary="Edit sale order details (no stock effect)",
    responses=error_responses(404, 422, 500, 503),
)
def update_sale_order(
    order_id: str,
    payload: SaleOrderUpdateIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    detail = sale_order_service.update_sale_order_fields(
        db, order_id=order_id, changes=payload, actor_id=actor_id
    )
    return _sale_order_out(detail)


@router.patch(
    "/{order_id}/status",
    response_model=SaleOrderOut,
    summary="Change sale order status",
    responses=error_responses(404, 409, 422, 500, 503),
)
def update_sale_order_status(
    order_id: str,
    payload: SaleOrderStatusUpdateIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    detail = sale_order_service.update_sale_order_status(
        db, order_id=order_id, status=payload.status, actor_id=actor_id
    )
    return _sale_order_out(detail)


@router.post(
    "/{order_id}/cancel",
    response_model=SaleOrderOut,
    summary="Cancel sale order and restore stock",
    responses=error_responses(404, 409, 500, 503),
)
def cancel_sale_order(
    order_id: str,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _sale_order_out(sale_order_service.cancel_sale_order(db, order_id=order_id, actor_id=actor_id))


@router.put(
    "/{order_id}/items",
    response_model=SaleOrderOut,
    summary="Replace sale order items",
    responses=error_responses(404, 409, 422, 500, 503),
)
def replace_sale_order_items(
    order_id: str,
    payload: SaleOrderItemsReplaceIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    detail = sale_order_service.replace_sale_order_items(
        db,
        order_id=order_id,
        items=payload.items,
        discount_amount=payload.discount_amount,
        actor_id=actor_id,
    )
    return _sale_order_out(detail)


@router.delete(
    "/{order_id}",
    status_code=204,
    summary="Delete a pending sale order and restore stock",
    responses=error_responses(404, 409, 500, 503),
)
def delete_sale_order(
    order_id: str,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    sale_order_service.delete_sale_order(db, order_id=order_id, actor_id=actor_id)
    return Response(status_code=204)
