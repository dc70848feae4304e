from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import Actor, get_db, warehouse_staff
from backend.app.db.session import unit_of_work
from backend.app.schemas.orders import (
    DiscrepancyReasonUpsert,
    DiscrepancyReportRead,
    ItemQuantityUpdate,
    OrderItemRead,
)
from backend.services import discrepancy, fulfillment

router = APIRouter(prefix="/order-items")


@router.patch("/{order_item_id}/quantity")
def update_item_quantity(
    order_item_id: int,
    payload: ItemQuantityUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(warehouse_staff),
):
    with unit_of_work(db):
        item = fulfillment.update_item_quantity(
            db,
            order_item_id,
            payload.package_quantity,
            actor_id=actor.user_id,
        )
    if item is None:
        return {"id": order_item_id, "removed": True}
    return {"removed": False, **OrderItemRead.model_validate(item).model_dump(mode="json")}


@router.put("/{order_item_id}/discrepancy-reason", response_model=DiscrepancyReportRead)
def upsert_discrepancy_reason(
    order_item_id: int,
    payload: DiscrepancyReasonUpsert,
    db: Session = Depends(get_db),
    actor: Actor = Depends(warehouse_staff),
):
    with unit_of_work(db):
        report = discrepancy.upsert_reason(db, order_item_id, payload.reason, actor_id=actor.user_id)
    return DiscrepancyReportRead.model_validate(report)
