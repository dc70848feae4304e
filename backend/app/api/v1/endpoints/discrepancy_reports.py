from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import Actor, any_staff, get_db
from backend.app.db.models.core_types import DiscrepancyType
from backend.app.schemas.orders import DiscrepancyReportRead
from backend.services import discrepancy

router = APIRouter(prefix="/discrepancy-reports")


@router.get("", response_model=list[DiscrepancyReportRead])
def list_discrepancy_reports(
    order_id: int | None = None,
    discrepancy_type: DiscrepancyType | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(any_staff),
):
    return discrepancy.list_reports(db, order_id=order_id, discrepancy_type=discrepancy_type)
