from datetime import datetime

from pydantic import BaseModel

from backend.app.db.models.core_types import MovementType


class StockLevelRead(BaseModel):
    product_id: int
    location_id: int

    stock: int
    reserved_quantity: int
    min_stock_level: int
    reorder_point: int
    needs_reorder: bool  # calculé, jamais stocké

    class Config:
        from_attributes = True


class StockMovementRead(BaseModel):
    id: int
    product_id: int
    from_location_id: int | None
    to_location_id: int | None
    order_id: int | None
    movement_type: MovementType
    quantity: int
    reason: str | None
    happened_at: datetime
    created_by: int | None

    class Config:
        from_attributes = True
