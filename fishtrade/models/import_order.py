from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fishtrade.core.time_utils import utcnow
from fishtrade.db.base import Base

IMPORT_STATUS_PENDING = "pending"
IMPORT_STATUS_CONFIRMED = "confirmed"
IMPORT_STATUS_DELIVERED = "delivered"
IMPORT_STATUS_CANCELLED = "cancelled"
IMPORT_ORDER_STATUSES = (
    IMPORT_STATUS_PENDING,
    IMPORT_STATUS_CONFIRMED,
    IMPORT_STATUS_DELIVERED,
    IMPORT_STATUS_CANCELLED,
)


class ImportOrder(Base):
    __tablename__ = "import_orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    supplier_id: Mapped[str] = mapped_column(String(36), ForeignKey("suppliers.id"), index=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=IMPORT_STATUS_PENDING, server_default=IMPORT_STATUS_PENDING
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
        Index("ix_import_orders_status_order_date", "status", "order_date"),
    )


class ImportOrderItem(Base):
    __tablename__ = "import_order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    import_order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("import_orders.id", ondelete="CASCADE"), index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    batch_id: Mapped[str] = mapped_column(String(40), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_import_order_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_import_order_items_unit_price_non_negative"),
    )
