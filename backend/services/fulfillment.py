"""
Moteur de commandes entrepôt -> magasin.

Cycle de vie :
    pending -> confirmed -> shipped -> delivered
    pending -> rejected
    pending | confirmed -> cancelled
delivered, cancelled, rejected sont terminaux.

Effets sur le ledger (tous dans la transaction de la transition) :
- confirm : plafonnement des quantités sur le stock entrepôt + réservation
- ship    : décrémentation du stock entrepôt (tout ou rien) + libération
- deliver : incrémentation du stock magasin + rapports d'écart
- cancel  : libération des réservations

Ce module ne commit jamais : l'appelant encadre avec unit_of_work().
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.models_v1 import (
    DiscrepancyReport,
    Location,
    StoreOrder,
    StoreOrderItem,
)
from backend.app.db.models.core_types import LocationType, OrderStatus
from backend.services import discrepancy, ledger
from backend.services.catalog import get_location, get_product_units, get_warehouse_location_id
from backend.services.errors import (
    EmptyReason,
    ImmutableAfterShipment,
    InsufficientStock,
    InvalidQuantity,
    InvalidTransition,
    MissingDeliveryDate,
    NotFound,
    PastDeliveryDate,
)
from backend.services.ledger import MovementRef
from backend.services.units import has_package_unit, to_base, to_packages

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.confirmed, OrderStatus.rejected, OrderStatus.cancelled}),
    OrderStatus.confirmed: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.delivered}),
    OrderStatus.delivered: frozenset(),
    OrderStatus.cancelled: frozenset(),
    OrderStatus.rejected: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

# date de livraison modifiable tant que rien n'est parti
DATE_EDITABLE_STATUSES = frozenset({OrderStatus.pending, OrderStatus.confirmed})

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ItemInput:
    product_id: int
    quantity: int
    unit_price: Decimal | float | int | str


@dataclass(frozen=True)
class QuantityAdjustment:
    item_id: int
    product_id: int
    requested: int
    adjusted: int
    removed: bool = False


@dataclass
class TransitionResult:
    order: StoreOrder
    from_status: OrderStatus
    to_status: OrderStatus
    adjustments: list[QuantityAdjustment] = field(default_factory=list)
    discrepancies: list[DiscrepancyReport] = field(default_factory=list)


# ---------- Helpers ----------
def _now(now: datetime | None) -> datetime:
    return _as_utc(now) if now is not None else datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # SQLite rend des datetimes naïfs : on les considère UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


def _subtotal(quantity: int, unit_price: Decimal) -> Decimal:
    return (Decimal(quantity) * _money(unit_price)).quantize(CENT)


def _recompute_total(order: StoreOrder) -> None:
    order.total_amount = sum((item.subtotal for item in order.items), Decimal("0.00"))


def _require_reason(reason: str | None) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise EmptyReason()
    return reason


def _validate_delivery_date(expected_delivery: datetime | None, now: datetime) -> datetime:
    if expected_delivery is None:
        raise MissingDeliveryDate()
    expected_delivery = _as_utc(expected_delivery)
    if expected_delivery <= now:
        raise PastDeliveryDate(
            f"Expected delivery {expected_delivery.isoformat()} must be after {now.isoformat()}"
        )
    return expected_delivery


def _load_order(db: Session, order_id: int, *, lock: bool = True) -> StoreOrder:
    order = db.get(
        StoreOrder,
        order_id,
        with_for_update=lock,
        populate_existing=True,
    )
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


def _check_transition(order: StoreOrder, target: OrderStatus) -> OrderStatus:
    current = OrderStatus(order.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        allowed = ", ".join(sorted(s.value for s in ALLOWED_TRANSITIONS[current])) or "none"
        raise InvalidTransition(
            f"Cannot move order {order.id} from '{current.value}' to '{target.value}' (allowed: {allowed})"
        )
    return current


def _claim_transition(db: Session, order: StoreOrder, target: OrderStatus) -> OrderStatus:
    """
    Claim conditionnel : UPDATE ... WHERE status = <statut lu>.
    Si une autre transaction est passée avant, 0 ligne -> InvalidTransition.
    """
    current = _check_transition(order, target)
    result = db.execute(
        update(StoreOrder)
        .where(StoreOrder.id == order.id)
        .where(StoreOrder.status == current)
        .values(status=target, version=StoreOrder.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidTransition(
            f"Order {order.id} is no longer '{current.value}', reload and retry"
        )
    db.refresh(order, attribute_names=["status", "version"])
    return current


def _in_lock_order(items: Iterable[StoreOrderItem]) -> list[StoreOrderItem]:
    # lignes ledger verrouillées par product_id croissant, quelle que soit la commande
    return sorted(items, key=lambda item: (item.product_id, item.id))


def _received_by_item(received: Mapping[int, int] | Iterable[tuple[int, int]] | None) -> dict[int, int]:
    if received is None:
        return {}
    pairs = received.items() if isinstance(received, Mapping) else received

    by_item: dict[int, int] = {}
    for item_id, qty in pairs:
        if item_id in by_item:
            raise InvalidQuantity(f"Order item {item_id} is listed more than once")
        if qty is None or int(qty) < 0:
            raise InvalidQuantity(f"Received quantity for item {item_id} must be >= 0")
        by_item[item_id] = int(qty)
    return by_item


def _generate_order_code(db: Session) -> str:
    for _ in range(10):
        code = f"SO{secrets.token_hex(4).upper()}"
        exists = db.execute(select(StoreOrder.id).where(StoreOrder.order_code == code)).first()
        if not exists:
            return code
    raise RuntimeError("Could not allocate a unique order code")


def _merge_items(items: Sequence[ItemInput]) -> dict[int, tuple[int, Decimal]]:
    merged: dict[int, tuple[int, Decimal]] = {}
    for it in items:
        qty = int(it.quantity)
        if qty <= 0:
            raise InvalidQuantity(f"Quantity for product {it.product_id} must be positive (got {qty})")
        price = _money(it.unit_price)
        if price < 0:
            raise InvalidQuantity(f"Unit price for product {it.product_id} must not be negative")

        if it.product_id in merged:
            prev_qty, prev_price = merged[it.product_id]
            if prev_price != price:
                raise InvalidQuantity(f"Product {it.product_id} listed twice with different unit prices")
            merged[it.product_id] = (prev_qty + qty, price)
        else:
            merged[it.product_id] = (qty, price)
    return merged


# ---------- Création ----------
def create_order(
    db: Session,
    *,
    target_location_id: int,
    items: Sequence[ItemInput],
    source_location_id: int | None = None,
    expected_delivery: datetime | None = None,
    notes: str | None = None,
    perishable: bool = False,
    created_by: int | None = None,
    now: datetime | None = None,
) -> StoreOrder:
    if not items:
        raise InvalidQuantity("Order must contain at least one item")

    now = _now(now)
    target = get_location(db, target_location_id)
    if target.type != LocationType.store:
        raise NotFound(f"Store location {target_location_id} not found")

    if source_location_id is None:
        source_location_id = get_warehouse_location_id(db)
    elif get_location(db, source_location_id).type != LocationType.warehouse:
        raise NotFound(f"Warehouse location {source_location_id} not found")

    if expected_delivery is not None:
        expected_delivery = _validate_delivery_date(expected_delivery, now)

    merged = _merge_items(items)
    for product_id in merged:
        get_product_units(db, product_id)

    order = StoreOrder(
        order_code=_generate_order_code(db),
        source_location_id=source_location_id,
        target_location_id=target_location_id,
        status=OrderStatus.pending,
        expected_delivery=expected_delivery,
        notes=notes,
        perishable=perishable,
        created_by=created_by,
        created_at=now,
    )
    for product_id, (qty, price) in merged.items():
        order.items.append(
            StoreOrderItem(
                product_id=product_id,
                quantity=qty,
                unit_price=price,
                package_quantity=qty,
                subtotal=_subtotal(qty, price),
            )
        )
    _recompute_total(order)

    db.add(order)
    db.flush()
    logger.info(
        "order %s (%s) created for store=%s with %s item(s), total=%s",
        order.id,
        order.order_code,
        target_location_id,
        len(order.items),
        order.total_amount,
    )
    return order


def delete_order(db: Session, order_id: int) -> None:
    order = _load_order(db, order_id)
    if order.status != OrderStatus.pending:
        raise InvalidTransition(f"Only pending orders can be deleted (order {order_id} is '{order.status.value}')")
    db.delete(order)
    db.flush()
    logger.info("order %s deleted", order_id)


# ---------- Transitions ----------
def confirm_order(
    db: Session,
    order_id: int,
    *,
    expected_delivery: datetime | None = None,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """
    pending -> confirmed.

    Date de livraison obligatoire et future (contrôlée à l'heure de l'appel).
    Chaque ligne est plafonnée UNE fois ici sur le stock entrepôt ;
    les ajustements sont retournés à l'appelant.
    """
    now = _now(now)
    order = _load_order(db, order_id)
    _check_transition(order, OrderStatus.confirmed)

    if expected_delivery is not None:
        order.expected_delivery = _validate_delivery_date(expected_delivery, now)
    else:
        order.expected_delivery = _validate_delivery_date(order.expected_delivery, now)

    previous = _claim_transition(db, order, OrderStatus.confirmed)
    warehouse_id = order.source_location_id

    adjustments: list[QuantityAdjustment] = []
    for item in _in_lock_order(order.items):
        units = get_product_units(db, item.product_id)
        allowed = ledger.cap(db, item.quantity, item.product_id, warehouse_id, units.package_conversion)

        if allowed == item.package_quantity:
            continue

        adjustments.append(
            QuantityAdjustment(
                item_id=item.id,
                product_id=item.product_id,
                requested=item.package_quantity,
                adjusted=allowed,
                removed=allowed == 0,
            )
        )
        if allowed == 0:
            order.items.remove(item)
            continue

        item.package_quantity = allowed
        item.auto_adjusted = True
        item.subtotal = _subtotal(allowed, item.unit_price)

    if not order.items:
        raise InsufficientStock(f"None of the products of order {order_id} is available at the warehouse")

    for item in _in_lock_order(order.items):
        units = get_product_units(db, item.product_id)
        ledger.reserve(
            db,
            item.product_id,
            warehouse_id,
            to_base(item.package_quantity, units.package_conversion),
            ref=MovementRef(order_id=order.id, item_id=item.id, stage="confirm", actor_id=actor_id, reason="ORDER_CONFIRM"),
        )

    _recompute_total(order)
    order.confirmed_at = now
    db.flush()

    for adj in adjustments:
        logger.warning(
            "order %s item %s product %s auto-adjusted %s -> %s%s",
            order.id,
            adj.item_id,
            adj.product_id,
            adj.requested,
            adj.adjusted,
            " (removed)" if adj.removed else "",
        )
    logger.info("order %s: %s -> %s", order.id, previous.value, OrderStatus.confirmed.value)
    return TransitionResult(order, previous, OrderStatus.confirmed, adjustments=adjustments)


def ship_order(
    db: Session,
    order_id: int,
    *,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """
    confirmed -> shipped. Tout ou rien : une décrémentation en échec
    fait échouer la transition entière (rollback par l'appelant).
    """
    now = _now(now)
    order = _load_order(db, order_id)
    previous = _claim_transition(db, order, OrderStatus.shipped)
    warehouse_id = order.source_location_id

    for item in _in_lock_order(order.items):
        units = get_product_units(db, item.product_id)
        base_qty = to_base(item.package_quantity, units.package_conversion)
        if base_qty <= 0:
            continue

        ref = MovementRef(order_id=order.id, item_id=item.id, stage="ship", actor_id=actor_id, reason="ORDER_SHIP")
        ledger.decrement(db, item.product_id, warehouse_id, base_qty, ref=ref)
        ledger.release(db, item.product_id, warehouse_id, base_qty, ref=ref)
        # quantité figée : sous-total définitif
        item.subtotal = _subtotal(item.package_quantity, item.unit_price)

    _recompute_total(order)
    order.shipped_at = now
    db.flush()
    logger.info("order %s: %s -> %s", order.id, previous.value, OrderStatus.shipped.value)
    return TransitionResult(order, previous, OrderStatus.shipped)


def deliver_order(
    db: Session,
    order_id: int,
    received: Mapping[int, int] | Iterable[tuple[int, int]] | None = None,
    *,
    note: str | None = None,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """
    shipped -> delivered, confirmé par le magasin.

    received : {order_item_id: quantité reçue en colis} ou paires
    (order_item_id, quantité). Une ligne citée deux fois est refusée, une
    ligne absente est considérée reçue à la quantité expédiée. Le stock
    magasin est crédité de ce qui a été reçu (excédent compris).
    """
    now = _now(now)
    received = _received_by_item(received)
    order = _load_order(db, order_id)

    item_ids = {item.id for item in order.items}
    for item_id in received:
        if item_id not in item_ids:
            raise NotFound(f"Order item {item_id} not found in order {order_id}")

    previous = _claim_transition(db, order, OrderStatus.delivered)
    store_id = order.target_location_id

    reports: list[DiscrepancyReport] = []
    for item in _in_lock_order(order.items):
        qty = received.get(item.id, item.package_quantity)
        item.received_quantity = qty

        if qty > 0:
            units = get_product_units(db, item.product_id)
            ledger.increment(
                db,
                item.product_id,
                store_id,
                to_base(qty, units.package_conversion),
                ref=MovementRef(order_id=order.id, item_id=item.id, stage="deliver", actor_id=actor_id, reason="ORDER_RECEIPT"),
            )

        report = discrepancy.file_report(db, item, reporter_id=actor_id)
        if report is not None:
            reports.append(report)

    order.store_receive_note = note
    order.delivered_at = now
    order.closed_at = now
    db.flush()
    logger.info(
        "order %s: %s -> %s (%s discrepancy report(s))",
        order.id,
        previous.value,
        OrderStatus.delivered.value,
        len(reports),
    )
    return TransitionResult(order, previous, OrderStatus.delivered, discrepancies=reports)


def reject_order(
    db: Session,
    order_id: int,
    reason: str | None,
    *,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    now = _now(now)
    order = _load_order(db, order_id)
    _check_transition(order, OrderStatus.rejected)
    reason = _require_reason(reason)

    previous = _claim_transition(db, order, OrderStatus.rejected)
    order.rejection_reason = reason
    order.closed_at = now
    db.flush()
    logger.info("order %s: %s -> %s (%s)", order.id, previous.value, OrderStatus.rejected.value, reason)
    return TransitionResult(order, previous, OrderStatus.rejected)


def cancel_order(
    db: Session,
    order_id: int,
    reason: str | None,
    *,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    now = _now(now)
    order = _load_order(db, order_id)
    _check_transition(order, OrderStatus.cancelled)
    reason = _require_reason(reason)

    previous = _claim_transition(db, order, OrderStatus.cancelled)

    # rien n'a quitté l'entrepôt : on ne fait que libérer les réservations
    if previous == OrderStatus.confirmed:
        for item in _in_lock_order(order.items):
            units = get_product_units(db, item.product_id)
            base_qty = to_base(item.package_quantity, units.package_conversion)
            if base_qty > 0:
                ledger.release(
                    db,
                    item.product_id,
                    order.source_location_id,
                    base_qty,
                    ref=MovementRef(order_id=order.id, item_id=item.id, stage="cancel", actor_id=actor_id, reason="ORDER_CANCEL"),
                )

    order.cancellation_reason = reason
    order.closed_at = now
    db.flush()
    logger.info("order %s: %s -> %s (%s)", order.id, previous.value, OrderStatus.cancelled.value, reason)
    return TransitionResult(order, previous, OrderStatus.cancelled)


# ---------- Éditions ----------
def update_item_quantity(
    db: Session,
    order_item_id: int,
    package_quantity: int,
    *,
    actor_id: int | None = None,
) -> StoreOrderItem | None:
    """
    Ajustement manuel de la quantité à expédier (status confirmed uniquement).
    0 retire la ligne. Retourne None si la ligne a été retirée.
    """
    item = db.get(StoreOrderItem, order_item_id)
    if not item:
        raise NotFound(f"Order item {order_item_id} not found")

    order = _load_order(db, item.order_id)
    if order.status != OrderStatus.confirmed:
        raise ImmutableAfterShipment(
            f"Quantities can only be edited on confirmed orders (order {order.id} is '{order.status.value}')"
        )

    package_quantity = int(package_quantity)
    if package_quantity < 0:
        raise InvalidQuantity("Package quantity must not be negative")
    if package_quantity > item.quantity:
        raise InvalidQuantity(
            f"Package quantity {package_quantity} exceeds ordered quantity {item.quantity}"
        )

    units = get_product_units(db, item.product_id)
    warehouse_id = order.source_location_id
    old_base = to_base(item.package_quantity, units.package_conversion)
    ref = MovementRef(actor_id=actor_id, order_id=order.id, reason="ORDER_QTY_EDIT")

    if package_quantity == 0:
        if len(order.items) == 1:
            raise InvalidQuantity("Cannot remove the last item of an order, cancel the order instead")
        if old_base > 0:
            ledger.release(db, item.product_id, warehouse_id, old_base, ref=ref)
        order.items.remove(item)
        _recompute_total(order)
        db.flush()
        logger.info("order %s item %s removed by manual edit", order.id, order_item_id)
        return None

    allowed = ledger.cap(db, package_quantity, item.product_id, warehouse_id, units.package_conversion)
    if allowed < package_quantity:
        raise InsufficientStock(
            product_id=item.product_id,
            available=ledger.get_available(db, item.product_id, warehouse_id),
            requested=to_base(package_quantity, units.package_conversion),
        )

    delta = to_base(package_quantity, units.package_conversion) - old_base
    if delta > 0:
        ledger.reserve(db, item.product_id, warehouse_id, delta, ref=ref)
    elif delta < 0:
        ledger.release(db, item.product_id, warehouse_id, -delta, ref=ref)

    item.package_quantity = package_quantity
    item.quantity_overridden = True
    item.subtotal = _subtotal(package_quantity, item.unit_price)
    _recompute_total(order)
    db.flush()
    logger.info("order %s item %s package_quantity set to %s", order.id, order_item_id, package_quantity)
    return item


def update_expected_delivery(
    db: Session,
    order_id: int,
    expected_delivery: datetime | None,
    *,
    now: datetime | None = None,
) -> StoreOrder:
    now = _now(now)
    order = _load_order(db, order_id)
    if order.status not in DATE_EDITABLE_STATUSES:
        raise ImmutableAfterShipment(
            f"Expected delivery can no longer be changed (order {order_id} is '{order.status.value}')"
        )
    order.expected_delivery = _validate_delivery_date(expected_delivery, now)
    db.flush()
    return order


# ---------- Lectures ----------
def get_order(db: Session, order_id: int) -> StoreOrder:
    return _load_order(db, order_id, lock=False)


def list_orders(
    db: Session,
    *,
    status: OrderStatus | None = None,
    target_location_id: int | None = None,
    search: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = 1,
    limit: int | None = None,
) -> tuple[list[StoreOrder], int]:
    """
    Commandes les plus récentes d'abord.
    search : nom du magasin ou code commande (sous-chaîne, insensible à la casse).
    start / end : bornes incluses sur created_at.
    """
    limit = limit or settings.order_page_size
    page = max(page, 1)

    filters = []
    if status is not None:
        filters.append(StoreOrder.status == status)
    if target_location_id is not None:
        filters.append(StoreOrder.target_location_id == target_location_id)
    if start is not None:
        filters.append(StoreOrder.created_at >= start)
    if end is not None:
        filters.append(StoreOrder.created_at <= end)

    search = (search or "").strip()
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Location.name.ilike(pattern),
                StoreOrder.order_code.ilike(pattern),
            )
        )

    stmt = (
        select(StoreOrder)
        .join(Location, Location.id == StoreOrder.target_location_id)
        .where(*filters)
    )
    count_stmt = (
        select(func.count(StoreOrder.id))
        .join(Location, Location.id == StoreOrder.target_location_id)
        .where(*filters)
    )

    rows = (
        db.execute(
            stmt.order_by(StoreOrder.created_at.desc(), StoreOrder.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    total = db.execute(count_stmt).scalar_one()
    return list(rows), int(total)


def order_statistics(
    db: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    stmt = select(
        StoreOrder.status,
        func.count(StoreOrder.id),
        func.coalesce(func.sum(StoreOrder.total_amount), 0),
    ).group_by(StoreOrder.status)
    if start is not None:
        stmt = stmt.where(StoreOrder.created_at >= start)
    if end is not None:
        stmt = stmt.where(StoreOrder.created_at <= end)

    by_status = {s.value: {"count": 0, "total_amount": Decimal("0.00")} for s in OrderStatus}
    for status, count, amount in db.execute(stmt).all():
        by_status[OrderStatus(status).value] = {"count": int(count), "total_amount": _money(amount)}

    return {
        "total_orders": sum(v["count"] for v in by_status.values()),
        "total_amount": sum((v["total_amount"] for v in by_status.values()), Decimal("0.00")),
        "by_status": by_status,
    }


def order_view(db: Session, order_id: int) -> dict:
    """
    Vue de lecture : commande + lignes en colis et en unité de base + état du
    stock entrepôt. Indicatif seulement, les transitions refont leurs contrôles.
    """
    order = get_order(db, order_id)
    warehouse_id = order.source_location_id

    items = []
    for item in order.items:
        units = get_product_units(db, item.product_id)
        snap = ledger.snapshot(db, item.product_id, warehouse_id)
        deliverable = to_packages(snap.stock, units.package_conversion)
        items.append(
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": units.name,
                "base_unit": units.base_unit,
                "package_unit": units.package_unit,
                "package_conversion": units.package_conversion,
                "has_package_unit": has_package_unit(units.package_conversion),
                "quantity": item.quantity,
                "quantity_in_base": to_base(item.quantity, units.package_conversion),
                "package_quantity": item.package_quantity,
                "package_quantity_in_base": to_base(item.package_quantity, units.package_conversion),
                "received_quantity": item.received_quantity,
                "unit_price": item.unit_price,
                "subtotal": item.subtotal,
                "auto_adjusted": item.auto_adjusted,
                "quantity_overridden": item.quantity_overridden,
                "discrepancy_reason": item.discrepancy_reason,
                "warehouse": {
                    "stock": snap.stock,
                    "reserved_quantity": snap.reserved_quantity,
                    "deliverable_packages": deliverable,
                    "exceeds_stock": item.package_quantity > deliverable,
                    "needs_reorder": snap.needs_reorder,
                },
            }
        )

    return {
        "id": order.id,
        "order_code": order.order_code,
        "source_location_id": order.source_location_id,
        "target_location_id": order.target_location_id,
        "status": order.status,
        "expected_delivery": order.expected_delivery,
        "total_amount": order.total_amount,
        "perishable": order.perishable,
        "notes": order.notes,
        "rejection_reason": order.rejection_reason,
        "cancellation_reason": order.cancellation_reason,
        "store_receive_note": order.store_receive_note,
        "created_by": order.created_by,
        "created_at": order.created_at,
        "confirmed_at": order.confirmed_at,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "allowed_transitions": sorted(s.value for s in ALLOWED_TRANSITIONS[OrderStatus(order.status)]),
        "items": items,
    }
