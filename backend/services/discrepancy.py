"""
Écarts expédié / reçu.

Un rapport par ligne de commande (clé unique order_item_id), append-only :
la raison saisie après coup par l'entrepôt met à jour le rapport existant.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import DiscrepancyReport, StoreOrderItem
from backend.app.db.models.core_types import DiscrepancyType
from backend.services.errors import NotFound, NoDiscrepancy

logger = logging.getLogger(__name__)


def classify(shipped: int, received: int) -> DiscrepancyType:
    if received < shipped:
        return DiscrepancyType.shortage
    if received > shipped:
        return DiscrepancyType.excess
    return DiscrepancyType.normal


def _find_report(db: Session, order_item_id: int) -> DiscrepancyReport | None:
    return db.execute(
        select(DiscrepancyReport).where(DiscrepancyReport.order_item_id == order_item_id)
    ).scalar_one_or_none()


def file_report(
    db: Session,
    item: StoreOrderItem,
    *,
    reporter_id: int | None = None,
) -> DiscrepancyReport | None:
    """
    Crée le rapport d'écart d'une ligne livrée.
    Retourne None si reçu == expédié (pas de rapport pour un écart normal).
    """
    if item.received_quantity is None:
        return None

    kind = classify(item.package_quantity, item.received_quantity)
    if kind == DiscrepancyType.normal:
        return None

    existing = _find_report(db, item.id)
    if existing:
        return existing

    report = DiscrepancyReport(
        order_item_id=item.id,
        order_id=item.order_id,
        product_id=item.product_id,
        shipped_quantity=item.package_quantity,
        received_quantity=item.received_quantity,
        difference=item.received_quantity - item.package_quantity,
        discrepancy_type=kind,
        reason=item.discrepancy_reason,
        reported_by=reporter_id,
    )
    db.add(report)
    db.flush()

    logger.warning(
        "discrepancy %s on order=%s item=%s product=%s (shipped=%s, received=%s)",
        kind.value,
        item.order_id,
        item.id,
        item.product_id,
        item.package_quantity,
        item.received_quantity,
    )
    return report


def upsert_reason(
    db: Session,
    order_item_id: int,
    reason: str,
    *,
    actor_id: int | None = None,
) -> DiscrepancyReport:
    """
    Enregistre / remplace la raison d'un écart. Idempotent, rejouable librement.
    """
    item = db.get(StoreOrderItem, order_item_id)
    if not item:
        raise NotFound(f"Order item {order_item_id} not found")

    if item.received_quantity is None or classify(item.package_quantity, item.received_quantity) == DiscrepancyType.normal:
        raise NoDiscrepancy(f"Order item {order_item_id} has no shipped/received discrepancy")

    report = _find_report(db, order_item_id) or file_report(db, item)

    reason = (reason or "").strip() or None
    item.discrepancy_reason = reason
    report.reason = reason
    report.reason_updated_by = actor_id
    db.flush()
    return report


def list_reports(
    db: Session,
    *,
    order_id: int | None = None,
    discrepancy_type: DiscrepancyType | None = None,
) -> list[DiscrepancyReport]:
    stmt = select(DiscrepancyReport).order_by(DiscrepancyReport.id.desc())
    if order_id is not None:
        stmt = stmt.where(DiscrepancyReport.order_id == order_id)
    if discrepancy_type is not None:
        stmt = stmt.where(DiscrepancyReport.discrepancy_type == discrepancy_type)
    return list(db.execute(stmt).scalars().all())
