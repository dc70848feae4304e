"""create store fulfillment schema

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7d9b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

location_type = sa.Enum("warehouse", "store", name="location_type")
order_status = sa.Enum("pending", "confirmed", "shipped", "delivered", "cancelled", "rejected", name="order_status")
movement_type = sa.Enum("receipt", "issue", "reserve", "unreserve", name="movement_type")
discrepancy_type = sa.Enum("normal", "shortage", "excess", name="discrepancy_type")


def upgrade() -> None:
    op.create_table(
        "locations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("type", location_type, nullable=False),
        sa.Column("address", sa.String(255)),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("base_unit", sa.String(32), nullable=False, server_default="unit"),
        sa.Column("package_unit", sa.String(32)),
        sa.Column("package_conversion", sa.Integer()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "stock_levels",
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reorder_point", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stock >= 0", name="ck_stock_nonneg"),
        sa.CheckConstraint("reserved_quantity >= 0", name="ck_stock_reserved_nonneg"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_stock_min_level_nonneg"),
        sa.CheckConstraint("reorder_point >= 0", name="ck_stock_reorder_point_nonneg"),
    )

    op.create_table(
        "store_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("order_code", sa.String(10), nullable=False, unique=True),
        sa.Column("source_location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("target_location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", order_status, nullable=False, server_default="pending"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("expected_delivery", sa.DateTime(timezone=True)),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("perishable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text()),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("cancellation_reason", sa.Text()),
        sa.Column("store_receive_note", sa.Text()),
        sa.Column("created_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("shipped_at", sa.DateTime(timezone=True)),
        sa.Column("delivered_at", sa.DateTime(timezone=True)),
        sa.Column("closed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("total_amount >= 0", name="ck_store_order_total_nonneg"),
        sa.CheckConstraint("source_location_id <> target_location_id", name="ck_store_order_locations_differ"),
    )
    op.create_index("ix_store_orders_status", "store_orders", ["status"])
    op.create_index("ix_store_orders_target_location_id", "store_orders", ["target_location_id"])

    op.create_table(
        "store_order_items",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("order_id", sa.BigInteger(), sa.ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("package_quantity", sa.Integer(), nullable=False),
        sa.Column("received_quantity", sa.Integer()),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False),
        sa.Column("auto_adjusted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quantity_overridden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discrepancy_reason", sa.Text()),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_qty_pos"),
        sa.CheckConstraint("package_quantity >= 0", name="ck_order_item_package_qty_nonneg"),
        sa.CheckConstraint("received_quantity IS NULL OR received_quantity >= 0", name="ck_order_item_received_nonneg"),
        sa.CheckConstraint("unit_price >= 0", name="ck_order_item_unit_price_nonneg"),
    )
    op.create_index("ix_store_order_items_order_id", "store_order_items", ["order_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("from_location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT")),
        sa.Column("to_location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT")),
        sa.Column("order_id", sa.BigInteger(), sa.ForeignKey("store_orders.id", ondelete="SET NULL")),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255)),
        sa.Column("happened_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.Integer()),
        sa.Column("idempotency_key", sa.String(64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
    )
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"])
    op.create_index("ix_stock_movements_order_id", "stock_movements", ["order_id"])
    op.create_index("ix_stock_movements_product_time", "stock_movements", ["product_id", "happened_at"])

    op.create_table(
        "discrepancy_reports",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("order_item_id", sa.BigInteger(), sa.ForeignKey("store_order_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order_id", sa.BigInteger(), sa.ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("shipped_quantity", sa.Integer(), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=False),
        sa.Column("difference", sa.Integer(), nullable=False),
        sa.Column("discrepancy_type", discrepancy_type, nullable=False),
        sa.Column("reason", sa.Text()),
        sa.Column("reported_by", sa.Integer()),
        sa.Column("reason_updated_by", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("order_item_id", name="uq_discrepancy_order_item"),
        sa.CheckConstraint("difference <> 0", name="ck_discrepancy_difference_nonzero"),
    )
    op.create_index("ix_discrepancy_reports_order_id", "discrepancy_reports", ["order_id"])


def downgrade() -> None:
    op.drop_table("discrepancy_reports")
    op.drop_table("stock_movements")
    op.drop_table("store_order_items")
    op.drop_table("store_orders")
    op.drop_table("stock_levels")
    op.drop_table("products")
    op.drop_table("locations")

    bind = op.get_bind()
    for enum_type in (discrepancy_type, movement_type, order_status, location_type):
        enum_type.drop(bind, checkfirst=True)
