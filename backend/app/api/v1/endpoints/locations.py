from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import Actor, any_staff, get_db
from backend.app.db.models.models_v1 import Location
from backend.app.db.models.core_types import LocationType

router = APIRouter(prefix="/locations")


@router.get("")
def list_locations(
    type: LocationType | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    stmt = select(Location).order_by(Location.id)
    if type is not None:
        stmt = stmt.where(Location.type == type)

    rows = db.execute(stmt).scalars().all()
    return [
        {
            "id": l.id,
            "name": l.name,
            "type": l.type,
            "address": l.address,
        }
        for l in rows
    ]
