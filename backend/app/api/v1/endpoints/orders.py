from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import Actor, any_staff, get_db, store_staff, warehouse_staff
from backend.app.db.session import unit_of_work
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.orders import (
    ConfirmRequest,
    DeliverRequest,
    ExpectedDeliveryUpdate,
    OrderCreate,
    OrderRead,
    ReasonRequest,
    TransitionRead,
)
from backend.services import fulfillment
from backend.services.fulfillment import ItemInput

router = APIRouter(prefix="/orders")


@router.get("")
def list_orders(
    status: OrderStatus | None = None,
    target_location_id: int | None = None,
    search: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    rows, total = fulfillment.list_orders(
        db,
        status=status,
        target_location_id=target_location_id,
        search=search,
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    return {
        "total": total,
        "page": page,
        "orders": [
            {
                "id": o.id,
                "order_code": o.order_code,
                "target_location_id": o.target_location_id,
                "status": o.status,
                "expected_delivery": o.expected_delivery,
                "total_amount": o.total_amount,
                "perishable": o.perishable,
                "created_at": o.created_at,
            }
            for o in rows
        ],
    }


@router.get("/statistics")
def order_statistics(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    return fulfillment.order_statistics(db, start=start, end=end)


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(any_staff)):
    return fulfillment.order_view(db, order_id)


@router.post("", status_code=201, response_model=OrderRead)
def create_order(payload: OrderCreate, db: Session = Depends(get_db), actor: Actor = Depends(store_staff)):
    with unit_of_work(db):
        order = fulfillment.create_order(
            db,
            target_location_id=payload.target_location_id,
            source_location_id=payload.source_location_id,
            items=[ItemInput(it.product_id, it.quantity, it.unit_price) for it in payload.items],
            expected_delivery=payload.expected_delivery,
            notes=payload.notes,
            perishable=payload.perishable,
            created_by=actor.user_id,
        )
    return OrderRead.model_validate(order)


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(store_staff)):
    with unit_of_work(db):
        fulfillment.delete_order(db, order_id)


# ---------- Transitions ----------
@router.post("/{order_id}/confirm", response_model=TransitionRead)
def confirm_order(
    order_id: int,
    payload: ConfirmRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(warehouse_staff),
):
    with unit_of_work(db):
        result = fulfillment.confirm_order(
            db,
            order_id,
            expected_delivery=payload.expected_delivery if payload else None,
            actor_id=actor.user_id,
        )
    return TransitionRead.model_validate(result)


@router.post("/{order_id}/ship", response_model=TransitionRead)
def ship_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(warehouse_staff)):
    with unit_of_work(db):
        result = fulfillment.ship_order(db, order_id, actor_id=actor.user_id)
    return TransitionRead.model_validate(result)


@router.post("/{order_id}/deliver", response_model=TransitionRead)
def deliver_order(
    order_id: int,
    payload: DeliverRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(store_staff),
):
    payload = payload or DeliverRequest()
    with unit_of_work(db):
        result = fulfillment.deliver_order(
            db,
            order_id,
            [(ln.order_item_id, ln.received_quantity) for ln in payload.items],
            note=payload.note,
            actor_id=actor.user_id,
        )
    return TransitionRead.model_validate(result)


@router.post("/{order_id}/reject", response_model=TransitionRead)
def reject_order(
    order_id: int,
    payload: ReasonRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(store_staff),
):
    with unit_of_work(db):
        result = fulfillment.reject_order(db, order_id, payload.reason, actor_id=actor.user_id)
    return TransitionRead.model_validate(result)


@router.post("/{order_id}/cancel", response_model=TransitionRead)
def cancel_order(
    order_id: int,
    payload: ReasonRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(warehouse_staff),
):
    with unit_of_work(db):
        result = fulfillment.cancel_order(db, order_id, payload.reason, actor_id=actor.user_id)
    return TransitionRead.model_validate(result)


@router.patch("/{order_id}/expected-delivery", response_model=OrderRead)
def update_expected_delivery(
    order_id: int,
    payload: ExpectedDeliveryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(warehouse_staff),
):
    with unit_of_work(db):
        order = fulfillment.update_expected_delivery(db, order_id, payload.expected_delivery)
    return OrderRead.model_validate(order)
