from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import Actor, any_staff, get_db
from backend.app.db.models.models_v1 import StockLevel, StockMovement, Location, Product
from backend.app.schemas.stock_level import StockLevelRead, StockMovementRead
from backend.services.ledger import needs_reorder

router = APIRouter(prefix="/stock")


@router.get(
    "",
    response_model=list[StockLevelRead],
)
def get_stock(
    location_id: int | None = None,
    product_id: int | None = None,
    only_reorder: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    """
    Stock (READ ONLY)
    - le ledger n'est modifié que par les transitions de commande
    - needs_reorder est calculé, jamais stocké
    """

    stmt = (
        select(StockLevel)
        .join(Location, Location.id == StockLevel.location_id)
        .join(Product, Product.id == StockLevel.product_id)
        .order_by(StockLevel.location_id, Product.sku)
    )

    if location_id is not None:
        stmt = stmt.where(StockLevel.location_id == location_id)

    if product_id is not None:
        stmt = stmt.where(StockLevel.product_id == product_id)

    stock_levels = db.execute(stmt).scalars().all()
    rows = [
        StockLevelRead(
            product_id=sl.product_id,
            location_id=sl.location_id,
            stock=sl.stock,
            reserved_quantity=sl.reserved_quantity,
            min_stock_level=sl.min_stock_level,
            reorder_point=sl.reorder_point,
            needs_reorder=needs_reorder(sl),
        )
        for sl in stock_levels
    ]
    if only_reorder:
        rows = [r for r in rows if r.needs_reorder]
    return rows


@router.get("/movements", response_model=list[StockMovementRead])
def list_movements(
    order_id: int | None = None,
    product_id: int | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    stmt = select(StockMovement).order_by(StockMovement.id.desc()).limit(limit)
    if order_id is not None:
        stmt = stmt.where(StockMovement.order_id == order_id)
    if product_id is not None:
        stmt = stmt.where(StockMovement.product_id == product_id)
    return db.execute(stmt).scalars().all()
