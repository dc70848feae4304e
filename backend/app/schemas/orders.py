from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import DiscrepancyType, OrderStatus


# ---------- Requêtes ----------
class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)


class OrderCreate(BaseModel):
    target_location_id: int
    source_location_id: int | None = None
    expected_delivery: datetime | None = None
    notes: str | None = None
    perishable: bool = False
    items: list[OrderItemCreate] = Field(default_factory=list)


class ConfirmRequest(BaseModel):
    expected_delivery: datetime | None = None


class ReceivedItem(BaseModel):
    order_item_id: int
    received_quantity: int = Field(ge=0)


class DeliverRequest(BaseModel):
    items: list[ReceivedItem] = Field(default_factory=list)
    note: str | None = None


class ReasonRequest(BaseModel):
    reason: str | None = None


class ExpectedDeliveryUpdate(BaseModel):
    expected_delivery: datetime | None = None


class ItemQuantityUpdate(BaseModel):
    package_quantity: int = Field(ge=0)


class DiscrepancyReasonUpsert(BaseModel):
    reason: str | None = None


# ---------- Réponses ----------
class OrderItemRead(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    package_quantity: int
    received_quantity: int | None
    subtotal: Decimal
    auto_adjusted: bool
    quantity_overridden: bool
    discrepancy_reason: str | None

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    order_code: str
    source_location_id: int
    target_location_id: int
    status: OrderStatus
    expected_delivery: datetime | None
    total_amount: Decimal
    perishable: bool
    notes: str | None
    rejection_reason: str | None
    cancellation_reason: str | None
    store_receive_note: str | None
    created_at: datetime
    items: list[OrderItemRead]

    class Config:
        from_attributes = True


class AdjustmentRead(BaseModel):
    item_id: int
    product_id: int
    requested: int
    adjusted: int
    removed: bool

    class Config:
        from_attributes = True


class DiscrepancyReportRead(BaseModel):
    id: int
    order_item_id: int
    order_id: int
    product_id: int
    shipped_quantity: int
    received_quantity: int
    difference: int
    discrepancy_type: DiscrepancyType
    reason: str | None
    reported_by: int | None
    reason_updated_by: int | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransitionRead(BaseModel):
    from_status: OrderStatus
    to_status: OrderStatus
    order: OrderRead
    adjustments: list[AdjustmentRead] = Field(default_factory=list)
    discrepancies: list[DiscrepancyReportRead] = Field(default_factory=list)

    class Config:
        from_attributes = True
