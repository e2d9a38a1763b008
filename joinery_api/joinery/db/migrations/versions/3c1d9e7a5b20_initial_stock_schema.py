"""Initial stock, materials-to-order and procurement schema.

- suppliers
- items
- materials_to_order / materials_to_order_items
- purchase_orders / purchase_order_items
- stock_reservations
- stock_transactions (append-only ledger)
- audit_log
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _soft_delete() -> sa.Column:
    return sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("address", sa.JSON(), nullable=False),
        _soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_suppliers"),
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("measurement_unit", sa.Text(), nullable=True),
        sa.Column("supplier_reference", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("supplier_id", sa.Uuid(), nullable=True),
        _soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
        sa.ForeignKeyConstraint(
            ["supplier_id"], ["suppliers.id"], name="fk_items_supplier_id_suppliers", ondelete="SET NULL"
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
    )
    op.create_index("ix_items_supplier_id", "items", ["supplier_id"])

    op.create_table(
        "materials_to_order",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_ref", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("used_material_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=True),
        _soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_materials_to_order"),
    )
    op.create_index("ix_materials_to_order_project_ref", "materials_to_order", ["project_ref"])

    op.create_table(
        "materials_to_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("mto_id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("quantity_ordered", sa.Integer(), server_default="0", nullable=False),
        sa.Column("quantity_ordered_po", sa.Integer(), server_default="0", nullable=False),
        sa.Column("ordered_by_id", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_materials_to_order_items"),
        sa.ForeignKeyConstraint(
            ["mto_id"], ["materials_to_order.id"],
            name="fk_materials_to_order_items_mto_id_materials_to_order", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_materials_to_order_items_item_id_items", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("quantity > 0", name="ck_materials_to_order_items_quantity_positive"),
        sa.CheckConstraint(
            "quantity_used >= 0 AND quantity_used <= quantity",
            name="ck_materials_to_order_items_used_within_quantity",
        ),
    )
    op.create_index("ix_materials_to_order_items_mto_id", "materials_to_order_items", ["mto_id"])
    op.create_index("ix_materials_to_order_items_item_id", "materials_to_order_items", ["item_id"])

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_no", sa.Text(), nullable=False),
        sa.Column("supplier_id", sa.Uuid(), nullable=False),
        sa.Column("mto_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("ordered_by", sa.Text(), nullable=True),
        sa.Column("ordered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_purchase_orders"),
        sa.UniqueConstraint("order_no", name="uq_purchase_orders_order_no"),
        sa.ForeignKeyConstraint(
            ["supplier_id"], ["suppliers.id"], name="fk_purchase_orders_supplier_id_suppliers", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["mto_id"], ["materials_to_order.id"],
            name="fk_purchase_orders_mto_id_materials_to_order", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_purchase_orders_supplier_id", "purchase_orders", ["supplier_id"])
    op.create_index("ix_purchase_orders_mto_id", "purchase_orders", ["mto_id"])

    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), server_default="0", nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_purchase_order_items"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["purchase_orders.id"],
            name="fk_purchase_order_items_order_id_purchase_orders", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_purchase_order_items_item_id_items", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
        sa.CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity",
            name="ck_purchase_order_items_received_within_ordered",
        ),
    )
    op.create_index("ix_purchase_order_items_order_id", "purchase_order_items", ["order_id"])
    op.create_index("ix_purchase_order_items_item_id", "purchase_order_items", ["item_id"])

    op.create_table(
        "stock_reservations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("mto_item_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("used_quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("user_id", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_stock_reservations"),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_stock_reservations_item_id_items", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["mto_item_id"], ["materials_to_order_items.id"],
            name="fk_stock_reservations_mto_item_id_materials_to_order_items", ondelete="CASCADE",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_stock_reservations_quantity_positive"),
        sa.CheckConstraint(
            "used_quantity >= 0 AND used_quantity <= quantity", name="ck_stock_reservations_used_within_quantity"
        ),
    )
    op.create_index("ix_stock_reservations_item_id", "stock_reservations", ["item_id"])
    op.create_index("ix_stock_reservations_mto_item_id", "stock_reservations", ["mto_item_id"])

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("purchase_order_id", sa.Uuid(), nullable=True),
        sa.Column("materials_to_order_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_stock_transactions"),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_stock_transactions_item_id_items", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["purchase_order_id"], ["purchase_orders.id"],
            name="fk_stock_transactions_purchase_order_id_purchase_orders", ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["materials_to_order_id"], ["materials_to_order.id"],
            name="fk_stock_transactions_materials_to_order_id_materials_to_order", ondelete="SET NULL",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
    )
    op.create_index("ix_stock_transactions_item_id", "stock_transactions", ["item_id"])
    op.create_index("ix_stock_transactions_purchase_order_id", "stock_transactions", ["purchase_order_id"])
    op.create_index("ix_stock_transactions_materials_to_order_id", "stock_transactions", ["materials_to_order_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.Text(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_entity_type", "audit_log", ["entity_type"])
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])


def downgrade() -> None:
    for table in [
        "audit_log",
        "stock_transactions",
        "stock_reservations",
        "purchase_order_items",
        "purchase_orders",
        "materials_to_order_items",
        "materials_to_order",
        "items",
        "suppliers",
    ]:
        op.drop_table(table)
