from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from fishtrade.core.time_utils import utcnow
from fishtrade.db.base import Base

LOG_TYPE_IMPORT = "import"
LOG_TYPE_SALE = "sale"
LOG_TYPE_ADJUSTMENT = "adjustment"
LOG_TYPE_LOSS = "loss"
INVENTORY_LOG_TYPES = (LOG_TYPE_IMPORT, LOG_TYPE_SALE, LOG_TYPE_ADJUSTMENT, LOG_TYPE_LOSS)

REF_SALE_ORDER = "sale_order"
REF_SALE_ORDER_CANCEL = "sale_order_cancel"
REF_SALE_ORDER_EDIT = "sale_order_edit"
REF_SALE_ORDER_DELETE = "sale_order_delete"
REF_IMPORT_ORDER = "import_order"
REF_MANUAL_ADJUSTMENT = "manual_adjustment"
REF_STOCK_COUNT = "stock_count"
REF_INITIAL_STOCK = "initial_stock"
REF_LOSS = "loss"


class InventoryRecord(Base):
    """
    Current on-hand quantity, one row per product.

    Only the ledger writes ``quantity``. ``version`` is bumped by every change
    and doubles as the optimistic-concurrency column: a stale writer fails
    with StaleDataError instead of overwriting a newer quantity.
    """

    __tablename__ = "inventory_records"

    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), primary_key=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_non_negative"),
    )


class InventoryLogEntry(Base):
    """
    One row per quantity change. Append-only.

    ``sequence`` is the record version this entry produced, so entries of one
    product form a gap-free chain: quantity_before of entry n equals
    quantity_after of entry n-1.
    """

    __tablename__ = "inventory_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # import | sale | adjustment | loss

    quantity_change: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    quantity_before: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)

    reference_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)  # e.g., "sale_order"
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    loss_reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("product_id", "sequence", name="uq_inventory_logs_product_sequence"),
        CheckConstraint("quantity_after >= 0", name="ck_inventory_logs_quantity_after_non_negative"),
        Index("ix_inventory_logs_type_created_at", "type", "created_at"),
        Index("ix_inventory_logs_product_created_at", "product_id", "created_at"),
        Index("ix_inventory_logs_reference", "reference_type", "reference_id"),
    )
