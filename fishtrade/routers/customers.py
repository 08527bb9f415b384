from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_actor_id, get_db
from fishtrade.models.customer import Customer
from fishtrade.models.supplier import Supplier
from fishtrade.schemas.common import pagination_meta
from fishtrade.schemas.customer import CustomerCreate, CustomerListOut, CustomerOut
from fishtrade.schemas.supplier import SupplierCreate, SupplierListOut, SupplierOut
from fishtrade.services import partner_service

router = APIRouter(tags=["partners"])


def _customer_out(customer: Customer) -> CustomerOut:
    return CustomerOut(
        id=customer.id,
        name=customer.name,
        phone=customer.phone,
        email=customer.email,
        address=customer.address,
        note=customer.note,
        created_at=customer.created_at,
    )


def _supplier_out(supplier: Supplier) -> SupplierOut:
    return SupplierOut(
        id=supplier.id,
        name=supplier.name,
        contact_person=supplier.contact_person,
        phone=supplier.phone,
        email=supplier.email,
        address=supplier.address,
        created_at=supplier.created_at,
    )


@router.post(
    "/customers",
    response_model=CustomerOut,
    status_code=201,
    summary="Create customer",
    responses=error_responses(422, 500),
)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _customer_out(partner_service.create_customer(db, payload=payload))


@router.get(
    "/customers",
    response_model=CustomerListOut,
    summary="List customers",
    responses=error_responses(422, 500),
)
def list_customers(
    q: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    customers, total = partner_service.list_customers(db, q=q, limit=limit, offset=offset)
    return CustomerListOut(
        items=[_customer_out(customer) for customer in customers],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(customers)),
    )


@router.post(
    "/suppliers",
    response_model=SupplierOut,
    status_code=201,
    summary="Create supplier",
    responses=error_responses(422, 500),
)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _supplier_out(partner_service.create_supplier(db, payload=payload))


@router.get(
    "/suppliers",
    response_model=SupplierListOut,
    summary="List suppliers",
    responses=error_responses(422, 500),
)
def list_suppliers(
    q: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    suppliers, total = partner_service.list_suppliers(db, q=q, limit=limit, offset=offset)
    return SupplierListOut(
        items=[_supplier_out(supplier) for supplier in suppliers],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(suppliers)),
    )
