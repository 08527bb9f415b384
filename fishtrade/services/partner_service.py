from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fishtrade.core.config import settings
from fishtrade.core.errors import NotFoundError
from fishtrade.core.id_utils import generate_id
from fishtrade.db.transaction import atomic
from fishtrade.models.customer import Customer
from fishtrade.models.supplier import Supplier
from fishtrade.schemas.customer import CustomerCreate
from fishtrade.schemas.supplier import SupplierCreate


def create_customer(db: Session, *, payload: CustomerCreate) -> Customer:
    with atomic(db, operation="customer.create"):
        customer = Customer(
            id=generate_id(),
            name=payload.name,
            phone=payload.phone,
            email=str(payload.email) if payload.email else None,
            address=payload.address,
            note=payload.note,
        )
        db.add(customer)
    db.refresh(customer)
    return customer


def get_customer(db: Session, customer_id: str) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("customer", customer_id)
    return customer


def list_customers(
    db: Session, *, q: str | None = None, limit: int = 50, offset: int = 0
) -> tuple[list[Customer], int]:
    stmt = select(Customer)
    if q and q.strip():
        stmt = stmt.where(Customer.name.ilike(f"%{q.strip()}%"))
    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(stmt.order_by(Customer.name.asc(), Customer.id.asc()).offset(offset).limit(limit)).scalars().all()
    return list(rows), total


def is_walk_in_name(name: str | None) -> bool:
    cleaned = (name or "").strip()
    return not cleaned or cleaned.lower() == settings.walk_in_customer_name.strip().lower()


def resolve_customer_id(
    db: Session,
    *,
    customer_id: str | None,
    customer_name: str | None,
) -> str | None:
    """
    Turn an order's customer reference into a customer id, inside the caller's transaction.

    An explicit id must exist. Otherwise a name is matched exactly or a new
    customer is created. No reference, or the walk-in name, means walk-in (None).
    """
    if customer_id and customer_id.strip():
        return get_customer(db, customer_id.strip()).id
    if is_walk_in_name(customer_name):
        return None

    name = customer_name.strip()
    existing_id = db.execute(
        select(Customer.id).where(Customer.name == name).order_by(Customer.created_at.asc()).limit(1)
    ).scalar_one_or_none()
    if existing_id:
        return existing_id

    customer = Customer(id=generate_id(), name=name)
    db.add(customer)
    db.flush()
    return customer.id


def customer_names(db: Session, customer_ids: set[str]) -> dict[str, str]:
    if not customer_ids:
        return {}
    rows = db.execute(select(Customer.id, Customer.name).where(Customer.id.in_(customer_ids))).all()
    return {customer_id: name for customer_id, name in rows}


def create_supplier(db: Session, *, payload: SupplierCreate) -> Supplier:
    with atomic(db, operation="supplier.create"):
        supplier = Supplier(
            id=generate_id(),
            name=payload.name,
            contact_person=payload.contact_person,
            phone=payload.phone,
            email=str(payload.email) if payload.email else None,
            address=payload.address,
        )
        db.add(supplier)
    db.refresh(supplier)
    return supplier


def get_supplier(db: Session, supplier_id: str) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("supplier", supplier_id)
    return supplier


def list_suppliers(
    db: Session, *, q: str | None = None, limit: int = 50, offset: int = 0
) -> tuple[list[Supplier], int]:
    stmt = select(Supplier)
    if q and q.strip():
        stmt = stmt.where(Supplier.name.ilike(f"%{q.strip()}%"))
    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(stmt.order_by(Supplier.name.asc(), Supplier.id.asc()).offset(offset).limit(limit)).scalars().all()
    return list(rows), total


def supplier_names(db: Session, supplier_ids: set[str]) -> dict[str, str]:
    if not supplier_ids:
        return {}
    rows = db.execute(select(Supplier.id, Supplier.name).where(Supplier.id.in_(supplier_ids))).all()
    return {supplier_id: name for supplier_id, name in rows}
