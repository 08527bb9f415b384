from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fishtrade.core.time_utils import utcnow
from fishtrade.db.base import Base

SALE_STATUS_PENDING = "pending"
SALE_STATUS_PROCESSING = "processing"
SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_CANCELLED = "cancelled"
SALE_ORDER_STATUSES = (
    SALE_STATUS_PENDING,
    SALE_STATUS_PROCESSING,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_CANCELLED,
)
SALE_TYPES = ("retail", "wholesale")


class SaleOrder(Base):
    __tablename__ = "sale_orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("customers.id"), nullable=True, index=True
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SALE_STATUS_PENDING, server_default=SALE_STATUS_PENDING
    )
    sale_type: Mapped[str] = mapped_column(String(20), nullable=False, default="retail", server_default="retail")
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("discount_amount >= 0", name="ck_sale_orders_discount_non_negative"),
        Index("ix_sale_orders_status_order_date", "status", "order_date"),
        Index("ix_sale_orders_created_at", "created_at"),
    )


class SaleOrderItem(Base):
    __tablename__ = "sale_order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    sale_order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sale_orders.id", ondelete="CASCADE"), index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_order_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_order_items_unit_price_non_negative"),
    )
