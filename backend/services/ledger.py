"""
Ledger de stock par (produit, location), en unité de base.

Règles :
- stock jamais négatif (contrôle applicatif + UPDATE gardé + CHECK SQL)
- la réservation est indicative : elle ne diminue pas le disponible
- chaque mutation verrouille la ligne (FOR UPDATE) et écrit un StockMovement
- decrement est la SEULE opération qui réduit le stock physique
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import StockLevel, StockMovement
from backend.app.db.models.core_types import MovementType
from backend.services.errors import InsufficientStock, InvalidQuantity
from backend.services.units import to_packages

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class MovementRef:
    """Contexte d'une mutation : qui, pour quelle ligne de commande, à quelle étape."""

    order_id: int | None = None
    item_id: int | None = None
    stage: str | None = None
    actor_id: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class LedgerSnapshot:
    product_id: int
    location_id: int
    stock: int
    reserved_quantity: int
    min_stock_level: int
    reorder_point: int
    needs_reorder: bool


# ---------- Helpers ----------
def _require_positive(quantity: int) -> int:
    quantity = int(quantity)
    if quantity <= 0:
        raise InvalidQuantity(f"Ledger quantity must be positive (got {quantity})")
    return quantity


def _find_stock_level(db: Session, product_id: int, location_id: int, *, lock: bool) -> StockLevel | None:
    stmt = (
        select(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.location_id == location_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def _get_or_create_stock_level(db: Session, product_id: int, location_id: int) -> StockLevel:
    sl = _find_stock_level(db, product_id, location_id, lock=True)
    if sl:
        return sl

    # deux transactions peuvent créer la même ligne : l'INSERT perdant ne fait
    # rien et la relecture verrouillée retombe sur la ligne gagnante
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Unsupported database dialect for the stock ledger: {dialect}")

    db.execute(
        insert(StockLevel)
        .values(
            product_id=product_id,
            location_id=location_id,
            stock=0,
            reserved_quantity=0,
            min_stock_level=0,
            reorder_point=0,
        )
        .on_conflict_do_nothing(index_elements=["product_id", "location_id"])
    )
    return _find_stock_level(db, product_id, location_id, lock=True)


def _movement_key(kind: MovementType, ref: MovementRef) -> str:
    if ref.order_id is None or ref.item_id is None or ref.stage is None:
        return uuid.uuid4().hex
    raw = f"LEDGER:{kind.value}:{ref.order_id}:{ref.item_id}:{ref.stage}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _record_movement(
    db: Session,
    kind: MovementType,
    *,
    product_id: int,
    location_id: int,
    quantity: int,
    ref: MovementRef,
) -> None:
    inbound = kind == MovementType.receipt
    db.add(
        StockMovement(
            product_id=product_id,
            from_location_id=None if inbound else location_id,
            to_location_id=location_id if inbound else None,
            order_id=ref.order_id,
            movement_type=kind,
            quantity=quantity,
            reason=ref.reason,
            created_by=ref.actor_id,
            idempotency_key=_movement_key(kind, ref),
        )
    )


def needs_reorder(level: StockLevel) -> bool:
    return level.stock <= level.reorder_point or level.stock < level.min_stock_level


# ---------- Lectures ----------
def get_available(db: Session, product_id: int, location_id: int) -> int:
    sl = _find_stock_level(db, product_id, location_id, lock=False)
    return int(sl.stock) if sl else 0


def snapshot(db: Session, product_id: int, location_id: int) -> LedgerSnapshot:
    sl = _find_stock_level(db, product_id, location_id, lock=False)
    if not sl:
        return LedgerSnapshot(
            product_id=product_id,
            location_id=location_id,
            stock=0,
            reserved_quantity=0,
            min_stock_level=0,
            reorder_point=0,
            needs_reorder=True,
        )
    return LedgerSnapshot(
        product_id=int(sl.product_id),
        location_id=int(sl.location_id),
        stock=int(sl.stock),
        reserved_quantity=int(sl.reserved_quantity),
        min_stock_level=int(sl.min_stock_level),
        reorder_point=int(sl.reorder_point),
        needs_reorder=needs_reorder(sl),
    )


def cap(
    db: Session,
    requested: int,
    product_id: int,
    location_id: int,
    conversion_factor: int | None,
) -> int:
    """
    Nombre de colis réellement livrables : min(demandé, colis entiers en stock).
    Verrouille la ligne pour que deux caps concurrents se sérialisent.
    """
    sl = _find_stock_level(db, product_id, location_id, lock=True)
    available = int(sl.stock) if sl else 0
    return min(int(requested), to_packages(available, conversion_factor))


# ---------- Mutations ----------
def reserve(
    db: Session,
    product_id: int,
    location_id: int,
    quantity: int,
    *,
    ref: MovementRef = MovementRef(),
) -> StockLevel:
    quantity = _require_positive(quantity)
    sl = _get_or_create_stock_level(db, product_id, location_id)
    if quantity > sl.stock:
        raise InsufficientStock(product_id=product_id, available=int(sl.stock), requested=quantity)

    db.execute(
        update(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.location_id == location_id)
        .values(reserved_quantity=StockLevel.reserved_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    _record_movement(db, MovementType.reserve, product_id=product_id, location_id=location_id, quantity=quantity, ref=ref)
    db.refresh(sl)
    logger.debug("reserve product=%s location=%s qty=%s", product_id, location_id, quantity)
    return sl


def release(
    db: Session,
    product_id: int,
    location_id: int,
    quantity: int,
    *,
    ref: MovementRef = MovementRef(),
) -> int:
    """Libère une réservation, plancher à zéro. Retourne la quantité réellement libérée."""
    quantity = _require_positive(quantity)
    sl = _find_stock_level(db, product_id, location_id, lock=True)
    if not sl:
        return 0

    released = min(int(sl.reserved_quantity), quantity)
    if released == 0:
        return 0

    db.execute(
        update(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.location_id == location_id)
        .values(
            reserved_quantity=case(
                (StockLevel.reserved_quantity > quantity, StockLevel.reserved_quantity - quantity),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    _record_movement(db, MovementType.unreserve, product_id=product_id, location_id=location_id, quantity=released, ref=ref)
    db.refresh(sl)
    logger.debug("release product=%s location=%s qty=%s", product_id, location_id, released)
    return released


def decrement(
    db: Session,
    product_id: int,
    location_id: int,
    quantity: int,
    *,
    ref: MovementRef = MovementRef(),
) -> StockLevel:
    quantity = _require_positive(quantity)
    sl = _get_or_create_stock_level(db, product_id, location_id)
    if quantity > sl.stock:
        raise InsufficientStock(product_id=product_id, available=int(sl.stock), requested=quantity)

    # UPDATE gardé : si une autre transaction a consommé le stock entre-temps,
    # 0 ligne touchée -> on abandonne toute la transition
    result = db.execute(
        update(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.location_id == location_id)
        .where(StockLevel.stock >= quantity)
        .values(stock=StockLevel.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    db.refresh(sl)
    if result.rowcount != 1:
        logger.error(
            "lost update detected on product=%s location=%s (stock=%s, requested=%s)",
            product_id,
            location_id,
            sl.stock,
            quantity,
        )
        raise InsufficientStock(product_id=product_id, available=int(sl.stock), requested=quantity)

    _record_movement(db, MovementType.issue, product_id=product_id, location_id=location_id, quantity=quantity, ref=ref)
    logger.debug("decrement product=%s location=%s qty=%s", product_id, location_id, quantity)
    return sl


def increment(
    db: Session,
    product_id: int,
    location_id: int,
    quantity: int,
    *,
    ref: MovementRef = MovementRef(),
) -> StockLevel:
    quantity = _require_positive(quantity)
    sl = _get_or_create_stock_level(db, product_id, location_id)

    db.execute(
        update(StockLevel)
        .where(StockLevel.product_id == product_id)
        .where(StockLevel.location_id == location_id)
        .values(stock=StockLevel.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    _record_movement(db, MovementType.receipt, product_id=product_id, location_id=location_id, quantity=quantity, ref=ref)
    db.refresh(sl)
    logger.debug("increment product=%s location=%s qty=%s", product_id, location_id, quantity)
    return sl
