import pytest
from sqlalchemy import select

from backend.app.db.models.models_v1 import StockLevel, StockMovement
from backend.app.db.models.core_types import MovementType
from backend.services import ledger
from backend.services.errors import InsufficientStock, InvalidQuantity
from backend.services.ledger import MovementRef

from conftest import stock_of


def test_get_available_returns_stock_and_zero_for_unknown_row(db_session, world):
    assert ledger.get_available(db_session, world.noodles.id, world.warehouse.id) == 100
    assert ledger.get_available(db_session, world.noodles.id, world.store.id) == 0


def test_cap_uses_whole_packages_in_stock(db_session, world):
    assert ledger.cap(db_session, 10, world.noodles.id, world.warehouse.id, 12) == 8
    assert ledger.cap(db_session, 5, world.noodles.id, world.warehouse.id, 12) == 5
    # sans unité colis : tout est en pièces
    assert ledger.cap(db_session, 80, world.battery.id, world.warehouse.id, None) == 50
    assert ledger.cap(db_session, 3, world.noodles.id, world.store.id, 12) == 0


def test_reserve_is_advisory(db_session, world):
    ledger.reserve(db_session, world.noodles.id, world.warehouse.id, 60)
    ledger.reserve(db_session, world.noodles.id, world.warehouse.id, 60)
    db_session.commit()

    sl = stock_of(db_session, world.noodles, world.warehouse)
    assert sl.stock == 100
    assert sl.reserved_quantity == 120
    assert ledger.get_available(db_session, world.noodles.id, world.warehouse.id) == 100


def test_reserve_above_stock_fails(db_session, world):
    with pytest.raises(InsufficientStock) as exc:
        ledger.reserve(db_session, world.noodles.id, world.warehouse.id, 101)
    assert exc.value.available == 100
    assert exc.value.requested == 101


def test_release_floors_at_zero(db_session, world):
    ledger.reserve(db_session, world.water.id, world.warehouse.id, 48)
    released = ledger.release(db_session, world.water.id, world.warehouse.id, 100)
    db_session.commit()

    assert released == 48
    assert stock_of(db_session, world.water, world.warehouse).reserved_quantity == 0
    assert ledger.release(db_session, world.water.id, world.warehouse.id, 10) == 0


def test_decrement_reduces_stock_and_journals_movement(db_session, world):
    ref = MovementRef(order_id=None, actor_id=3, reason="TEST")
    ledger.decrement(db_session, world.noodles.id, world.warehouse.id, 96, ref=ref)
    db_session.commit()

    assert stock_of(db_session, world.noodles, world.warehouse).stock == 4
    mv = db_session.execute(select(StockMovement)).scalar_one()
    assert mv.movement_type == MovementType.issue
    assert mv.quantity == 96
    assert mv.from_location_id == world.warehouse.id
    assert mv.created_by == 3


def test_decrement_never_overdraws(db_session, world):
    with pytest.raises(InsufficientStock):
        ledger.decrement(db_session, world.noodles.id, world.warehouse.id, 101)
    db_session.rollback()
    assert stock_of(db_session, world.noodles, world.warehouse).stock == 100


def test_decrement_rereads_stock_changed_by_another_session(session_factory, world):
    first = session_factory()
    second = session_factory()
    try:
        # première lecture : 100 en stock
        assert stock_of(first, world.noodles, world.warehouse).stock == 100

        ledger.decrement(second, world.noodles.id, world.warehouse.id, 60)
        second.commit()

        with pytest.raises(InsufficientStock) as exc:
            ledger.decrement(first, world.noodles.id, world.warehouse.id, 60)
        assert exc.value.available == 40
        first.rollback()

        assert stock_of(first, world.noodles, world.warehouse).stock == 40
    finally:
        first.close()
        second.close()


def test_increment_creates_missing_row(db_session, world):
    ledger.increment(db_session, world.noodles.id, world.store.id, 72)
    db_session.commit()

    sl = stock_of(db_session, world.noodles, world.store)
    assert sl.stock == 72
    assert sl.reserved_quantity == 0


def test_increment_reuses_row_created_by_another_transaction(session_factory, db_session, world, monkeypatch):
    other = session_factory()
    try:
        ledger.increment(other, world.noodles.id, world.store.id, 24)
        other.commit()
    finally:
        other.close()

    # la première lecture a eu lieu avant le commit de l'autre transaction
    real_find = ledger._find_stock_level
    calls = []

    def stale_first_read(db, product_id, location_id, *, lock):
        calls.append(lock)
        if len(calls) == 1:
            return None
        return real_find(db, product_id, location_id, lock=lock)

    monkeypatch.setattr(ledger, "_find_stock_level", stale_first_read)
    ledger.increment(db_session, world.noodles.id, world.store.id, 72)
    db_session.commit()
    monkeypatch.undo()

    assert len(calls) == 2
    assert stock_of(db_session, world.noodles, world.store).stock == 96
    rows = db_session.execute(
        select(StockLevel)
        .where(StockLevel.product_id == world.noodles.id)
        .where(StockLevel.location_id == world.store.id)
    ).scalars().all()
    assert len(rows) == 1


def test_non_positive_quantities_are_rejected(db_session, world):
    with pytest.raises(InvalidQuantity):
        ledger.increment(db_session, world.noodles.id, world.store.id, 0)
    with pytest.raises(InvalidQuantity):
        ledger.decrement(db_session, world.noodles.id, world.warehouse.id, -1)


def test_snapshot_flags_reorder(db_session, world):
    snap = ledger.snapshot(db_session, world.battery.id, world.warehouse.id)
    assert snap.stock == 50
    assert snap.needs_reorder is False

    ledger.decrement(db_session, world.battery.id, world.warehouse.id, 40)
    db_session.commit()
    assert ledger.snapshot(db_session, world.battery.id, world.warehouse.id).needs_reorder is True


def test_movement_keys_are_unique_per_order_item_stage(db_session, world):
    ref = MovementRef(order_id=None, item_id=None, stage=None)
    ledger.increment(db_session, world.battery.id, world.store.id, 1, ref=ref)
    ledger.increment(db_session, world.battery.id, world.store.id, 1, ref=ref)
    db_session.commit()

    keys = db_session.execute(select(StockMovement.idempotency_key)).scalars().all()
    assert len(set(keys)) == 2
