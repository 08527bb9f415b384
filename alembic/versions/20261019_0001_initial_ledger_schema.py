"""initial ledger schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=True,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("scientific_name", sa.String(length=255), nullable=True),
        sa.Column("category_id", sa.String(length=36), nullable=True),
        sa.Column("size", sa.String(length=50), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="unit"),
        sa.Column("min_stock", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("retail_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("wholesale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
    )
    op.create_index("ix_products_category_id", "products", ["category_id"], unique=False)
    op.create_index("ix_products_active_name", "products", ["is_active", "name"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_name", "customers", ["name"], unique=False)
    op.create_index("ix_customers_phone", "customers", ["phone"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("contact_person", sa.String(length=120), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_suppliers_name", "suppliers", ["name"], unique=False)

    op.create_table(
        "inventory_records",
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_non_negative"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("product_id"),
    )

    op.create_table(
        "inventory_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("quantity_change", sa.Numeric(12, 3), nullable=False),
        sa.Column("quantity_before", sa.Numeric(12, 3), nullable=False),
        sa.Column("quantity_after", sa.Numeric(12, 3), nullable=False),
        sa.Column("reference_type", sa.String(length=40), nullable=True),
        sa.Column("reference_id", sa.String(length=36), nullable=True),
        sa.Column("loss_reason", sa.String(length=100), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("actor_id", sa.String(length=36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("quantity_after >= 0", name="ck_inventory_logs_quantity_after_non_negative"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "sequence", name="uq_inventory_logs_product_sequence"),
    )
    op.create_index("ix_inventory_logs_product_id", "inventory_logs", ["product_id"], unique=False)
    op.create_index(
        "ix_inventory_logs_type_created_at", "inventory_logs", ["type", "created_at"], unique=False
    )
    op.create_index(
        "ix_inventory_logs_product_created_at",
        "inventory_logs",
        ["product_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_inventory_logs_reference",
        "inventory_logs",
        ["reference_type", "reference_id"],
        unique=False,
    )

    op.create_table(
        "sale_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_number", sa.String(length=40), nullable=False),
        sa.Column("customer_id", sa.String(length=36), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("sale_type", sa.String(length=20), nullable=False, server_default="retail"),
        sa.Column("payment_method", sa.String(length=30), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("discount_amount >= 0", name="ck_sale_orders_discount_non_negative"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
    )
    op.create_index("ix_sale_orders_customer_id", "sale_orders", ["customer_id"], unique=False)
    op.create_index(
        "ix_sale_orders_status_order_date", "sale_orders", ["status", "order_date"], unique=False
    )
    op.create_index("ix_sale_orders_created_at", "sale_orders", ["created_at"], unique=False)

    op.create_table(
        "sale_order_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("sale_order_id", sa.String(length=36), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_sale_order_items_quantity_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_sale_order_items_unit_price_non_negative"),
        sa.ForeignKeyConstraint(["sale_order_id"], ["sale_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_sale_order_items_sale_order_id", "sale_order_items", ["sale_order_id"], unique=False
    )
    op.create_index("ix_sale_order_items_product_id", "sale_order_items", ["product_id"], unique=False)

    op.create_table(
        "import_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_number", sa.String(length=40), nullable=False),
        sa.Column("supplier_id", sa.String(length=36), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery", sa.Date(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
    )
    op.create_index("ix_import_orders_supplier_id", "import_orders", ["supplier_id"], unique=False)
    op.create_index(
        "ix_import_orders_status_order_date", "import_orders", ["status", "order_date"], unique=False
    )

    op.create_table(
        "import_order_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("import_order_id", sa.String(length=36), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("batch_id", sa.String(length=40), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_import_order_items_quantity_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_import_order_items_unit_price_non_negative"),
        sa.ForeignKeyConstraint(["import_order_id"], ["import_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_import_order_items_import_order_id", "import_order_items", ["import_order_id"], unique=False
    )
    op.create_index(
        "ix_import_order_items_product_id", "import_order_items", ["product_id"], unique=False
    )
    op.create_index("ix_import_order_items_batch_id", "import_order_items", ["batch_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_import_order_items_batch_id", table_name="import_order_items")
    op.drop_index("ix_import_order_items_product_id", table_name="import_order_items")
    op.drop_index("ix_import_order_items_import_order_id", table_name="import_order_items")
    op.drop_table("import_order_items")

    op.drop_index("ix_import_orders_status_order_date", table_name="import_orders")
    op.drop_index("ix_import_orders_supplier_id", table_name="import_orders")
    op.drop_table("import_orders")

    op.drop_index("ix_sale_order_items_product_id", table_name="sale_order_items")
    op.drop_index("ix_sale_order_items_sale_order_id", table_name="sale_order_items")
    op.drop_table("sale_order_items")

    op.drop_index("ix_sale_orders_created_at", table_name="sale_orders")
    op.drop_index("ix_sale_orders_status_order_date", table_name="sale_orders")
    op.drop_index("ix_sale_orders_customer_id", table_name="sale_orders")
    op.drop_table("sale_orders")

    op.drop_index("ix_inventory_logs_reference", table_name="inventory_logs")
    op.drop_index("ix_inventory_logs_product_created_at", table_name="inventory_logs")
    op.drop_index("ix_inventory_logs_type_created_at", table_name="inventory_logs")
    op.drop_index("ix_inventory_logs_product_id", table_name="inventory_logs")
    op.drop_table("inventory_logs")

    op.drop_table("inventory_records")

    op.drop_index("ix_suppliers_name", table_name="suppliers")
    op.drop_table("suppliers")

    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_index("ix_customers_name", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_products_active_name", table_name="products")
    op.drop_index("ix_products_category_id", table_name="products")
    op.drop_table("products")

    op.drop_table("categories")
