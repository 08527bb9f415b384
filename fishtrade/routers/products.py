from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fishtrade.core.api_docs import error_responses
from fishtrade.core.deps import get_actor_id, get_db
from fishtrade.models.product import Category, Product
from fishtrade.schemas.common import pagination_meta
from fishtrade.schemas.product import (
    CategoryCreate,
    CategoryListOut,
    CategoryOut,
    ProductCreate,
    ProductListOut,
    ProductOut,
)
from fishtrade.services import catalog_service

router = APIRouter(tags=["catalog"])


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _product_out(product: Product, quantity: Decimal) -> ProductOut:
    return ProductOut(
        id=product.id,
        sku=product.sku,
        name=product.name,
        scientific_name=product.scientific_name,
        category_id=product.category_id,
        size=product.size,
        unit=product.unit,
        min_stock=float(product.min_stock),
        cost_price=_money(product.cost_price),
        retail_price=_money(product.retail_price),
        wholesale_price=_money(product.wholesale_price),
        is_active=product.is_active,
        quantity=float(quantity),
        created_at=product.created_at,
    )


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        description=category.description,
        created_at=category.created_at,
    )


@router.post(
    "/categories",
    response_model=CategoryOut,
    status_code=201,
    summary="Create category",
    responses=error_responses(422, 500),
)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    return _category_out(catalog_service.create_category(db, payload=payload))


@router.get(
    "/categories",
    response_model=CategoryListOut,
    summary="List categories",
    responses=error_responses(500),
)
def list_categories(db: Session = Depends(get_db)):
    return CategoryListOut(items=[_category_out(category) for category in catalog_service.list_categories(db)])


@router.post(
    "/products",
    response_model=ProductOut,
    status_code=201,
    summary="Create product",
    responses=error_responses(404, 422, 500, 503),
)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product, quantity = catalog_service.create_product(db, payload=payload, actor_id=actor_id)
    return _product_out(product, quantity)


@router.get(
    "/products",
    response_model=ProductListOut,
    summary="List products with stock",
    responses=error_responses(422, 500),
)
def list_products(
    q: str | None = Query(default=None),
    category_id: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    rows, total = catalog_service.list_products(
        db,
        q=q,
        category_id=category_id,
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )
    return ProductListOut(
        items=[_product_out(product, quantity) for product, quantity in rows],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(rows)),
    )


@router.get(
    "/products/{product_id}",
    response_model=ProductOut,
    summary="Get product",
    responses=error_responses(404, 500),
)
def get_product(product_id: str, db: Session = Depends(get_db)):
    product, quantity = catalog_service.get_product_with_stock(db, product_id)
    return _product_out(product, quantity)
