from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base, BigIntPK
from backend.app.db.models.core_types import (
    LocationType,
    MovementType,
    OrderStatus,
    DiscrepancyType,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- MASTER DATA ----------
class Location(Base):
    __tablename__ = "locations"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    type: Mapped[LocationType] = mapped_column(Enum(LocationType, name="location_type"), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255))


class Product(Base):
    """
    Fiche produit (catalogue externe, lecture seule ici).

    package_conversion = nombre d'unités de base dans un colis.
    NULL ou <= 1 : pas d'unité colis, tout est en unité de base.
    """

    __tablename__ = "products"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_unit: Mapped[str] = mapped_column(String(32), default="unit", nullable=False)
    package_unit: Mapped[str | None] = mapped_column(String(32))
    package_conversion: Mapped[int | None] = mapped_column(Integer)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ---------- INVENTORY ----------
class StockLevel(Base):
    """Ligne de ledger : une par (produit, location), quantités en unité de base."""

    __tablename__ = "stock_levels"
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), primary_key=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="RESTRICT"), primary_key=True)

    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # réservation indicative : peut dépasser stock transitoirement
    reserved_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reorder_point: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    product: Mapped[Product] = relationship()
    location: Mapped[Location] = relationship()

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_stock_nonneg"),
        CheckConstraint("reserved_quantity >= 0", name="ck_stock_reserved_nonneg"),
        CheckConstraint("min_stock_level >= 0", name="ck_stock_min_level_nonneg"),
        CheckConstraint("reorder_point >= 0", name="ck_stock_reorder_point_nonneg"),
    )


class StockMovement(Base):
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    from_location_id: Mapped[int | None] = mapped_column(ForeignKey("locations.id", ondelete="RESTRICT"))
    to_location_id: Mapped[int | None] = mapped_column(ForeignKey("locations.id", ondelete="RESTRICT"))
    order_id: Mapped[int | None] = mapped_column(
        ForeignKey("store_orders.id", ondelete="SET NULL"),
        index=True,
    )

    movement_type: Mapped[MovementType] = mapped_column(Enum(MovementType, name="movement_type"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))

    happened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_by: Mapped[int | None] = mapped_column(Integer)

    idempotency_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_qty_pos"),
        Index("ix_stock_movements_product_time", "product_id", "happened_at"),
    )


# ---------- STORE ORDERS ----------
class StoreOrder(Base):
    __tablename__ = "store_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)

    source_location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False)
    target_location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"),
        default=OrderStatus.pending,
        nullable=False,
        index=True,
    )
    # incrémenté à chaque transition (claim conditionnel)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    expected_delivery: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0.00"), nullable=False)
    perishable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    store_receive_note: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    source_location: Mapped[Location] = relationship(foreign_keys=[source_location_id])
    target_location: Mapped[Location] = relationship(foreign_keys=[target_location_id])
    items: Mapped[list["StoreOrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="StoreOrderItem.id",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_store_order_total_nonneg"),
        CheckConstraint("source_location_id <> target_location_id", name="ck_store_order_locations_differ"),
    )


class StoreOrderItem(Base):
    """
    Ligne de commande, quantités en colis.

    - quantity : commandé par le magasin
    - package_quantity : à expédier (= quantity tant que non ajusté)
    - received_quantity : confirmé par le magasin, écrit une seule fois
    """

    __tablename__ = "store_order_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    package_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_quantity: Mapped[int | None] = mapped_column(Integer)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    auto_adjusted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quantity_overridden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discrepancy_reason: Mapped[str | None] = mapped_column(Text)

    order: Mapped[StoreOrder] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_qty_pos"),
        CheckConstraint("package_quantity >= 0", name="ck_order_item_package_qty_nonneg"),
        CheckConstraint("received_quantity IS NULL OR received_quantity >= 0", name="ck_order_item_received_nonneg"),
        CheckConstraint("unit_price >= 0", name="ck_order_item_unit_price_nonneg"),
    )


# ---------- AUDIT ----------
class DiscrepancyReport(Base):
    __tablename__ = "discrepancy_reports"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("store_order_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_id: Mapped[int] = mapped_column(
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    shipped_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    difference: Mapped[int] = mapped_column(Integer, nullable=False)
    discrepancy_type: Mapped[DiscrepancyType] = mapped_column(
        Enum(DiscrepancyType, name="discrepancy_type"),
        nullable=False,
    )

    reason: Mapped[str | None] = mapped_column(Text)
    reported_by: Mapped[int | None] = mapped_column(Integer)
    reason_updated_by: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("order_item_id", name="uq_discrepancy_order_item"),
        CheckConstraint("difference <> 0", name="ck_discrepancy_difference_nonzero"),
    )
