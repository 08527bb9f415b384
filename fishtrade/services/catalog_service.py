from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fishtrade.core.errors import NotFoundError, OrderValidationError
from fishtrade.core.id_utils import generate_id, generate_sku_candidate
from fishtrade.core.money import ZERO_QUANTITY, to_money, to_quantity
from fishtrade.db.transaction import atomic
from fishtrade.models.inventory import LOG_TYPE_ADJUSTMENT, REF_INITIAL_STOCK, InventoryRecord
from fishtrade.models.product import Category, Product
from fishtrade.schemas.product import CategoryCreate, ProductCreate
from fishtrade.services.inventory_service import apply_stock_change

SKU_MAX_ATTEMPTS = 10


def create_category(db: Session, *, payload: CategoryCreate) -> Category:
    with atomic(db, operation="category.create"):
        duplicate = db.execute(
            select(Category.id).where(func.lower(Category.name) == payload.name.lower())
        ).scalar_one_or_none()
        if duplicate:
            raise OrderValidationError(f"Category '{payload.name}' already exists", field="name")
        category = Category(id=generate_id(), name=payload.name, description=payload.description)
        db.add(category)
    db.refresh(category)
    return category


def list_categories(db: Session) -> list[Category]:
    return list(db.execute(select(Category).order_by(Category.name.asc())).scalars().all())


def _sku_taken(db: Session, sku: str) -> bool:
    return db.execute(select(Product.id).where(Product.sku == sku)).scalar_one_or_none() is not None


def _generate_unique_sku(db: Session, name: str) -> str:
    for _ in range(SKU_MAX_ATTEMPTS):
        candidate = generate_sku_candidate(name)
        if not _sku_taken(db, candidate):
            return candidate
    raise OrderValidationError("Could not generate a unique SKU; provide one explicitly", field="sku")


def create_product(db: Session, *, payload: ProductCreate, actor_id: str) -> tuple[Product, Decimal]:
    """Create a catalog entry; ``initial_stock`` is booked through the ledger in the same transaction."""
    with atomic(db, operation="product.create"):
        if payload.category_id and db.get(Category, payload.category_id) is None:
            raise NotFoundError("category", payload.category_id)
        if payload.sku:
            sku = payload.sku.upper()
            if _sku_taken(db, sku):
                raise OrderValidationError(f"SKU '{sku}' is already in use", field="sku")
        else:
            sku = _generate_unique_sku(db, payload.name)

        product = Product(
            id=generate_id(),
            sku=sku,
            name=payload.name,
            scientific_name=payload.scientific_name,
            category_id=payload.category_id,
            size=payload.size,
            unit=payload.unit,
            min_stock=to_quantity(payload.min_stock),
            cost_price=to_money(payload.cost_price) if payload.cost_price is not None else None,
            retail_price=to_money(payload.retail_price) if payload.retail_price is not None else None,
            wholesale_price=to_money(payload.wholesale_price) if payload.wholesale_price is not None else None,
            is_active=True,
        )
        db.add(product)
        db.flush()

        quantity = ZERO_QUANTITY
        initial_stock = to_quantity(payload.initial_stock)
        if initial_stock > 0:
            adjustment = apply_stock_change(
                db,
                product_id=product.id,
                delta=initial_stock,
                log_type=LOG_TYPE_ADJUSTMENT,
                actor_id=actor_id,
                reference_type=REF_INITIAL_STOCK,
                note="Initial stock",
            )
            quantity = adjustment.quantity_after

    db.refresh(product)
    return product, quantity


def get_product_with_stock(db: Session, product_id: str) -> tuple[Product, Decimal]:
    row = db.execute(
        select(Product, InventoryRecord.quantity)
        .outerjoin(InventoryRecord, InventoryRecord.product_id == Product.id)
        .where(Product.id == product_id)
    ).one_or_none()
    if row is None:
        raise NotFoundError("product", product_id)
    product, quantity = row
    return product, to_quantity(quantity) if quantity is not None else ZERO_QUANTITY


def list_products(
    db: Session,
    *,
    q: str | None = None,
    category_id: str | None = None,
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[tuple[Product, Decimal]], int]:
    stmt = select(Product, InventoryRecord.quantity).outerjoin(
        InventoryRecord, InventoryRecord.product_id == Product.id
    )
    if not include_inactive:
        stmt = stmt.where(Product.is_active.is_(True))
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        stmt = stmt.where(Product.name.ilike(pattern) | Product.sku.ilike(pattern))

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(stmt.order_by(Product.name.asc(), Product.id.asc()).offset(offset).limit(limit)).all()
    return [
        (product, to_quantity(quantity) if quantity is not None else ZERO_QUANTITY)
        for product, quantity in rows
    ], total
