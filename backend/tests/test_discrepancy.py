import pytest
from sqlalchemy import select

from backend.app.db.models.models_v1 import DiscrepancyReport, StockMovement
from backend.app.db.models.core_types import DiscrepancyType, MovementType, OrderStatus
from backend.app.db.session import unit_of_work
from backend.services import discrepancy, fulfillment
from backend.services.errors import InvalidQuantity, InvalidTransition, NoDiscrepancy, NotFound

from conftest import NOW, confirmed_order, shipped_order, stock_of


@pytest.mark.parametrize(
    "shipped, received, expected",
    [
        (8, 6, DiscrepancyType.shortage),
        (8, 8, DiscrepancyType.normal),
        (8, 9, DiscrepancyType.excess),
        (3, 0, DiscrepancyType.shortage),
    ],
)
def test_classify(shipped, received, expected):
    assert discrepancy.classify(shipped, received) == expected


def test_delivery_shortage_files_report_and_credits_received(db_session, world):
    """8 cartons de 12 expédiés, 6 reçus -> écart -2, magasin +72 pièces."""
    order = shipped_order(db_session, world, [(world.noodles, 10, "5.00")])
    item_id = order.items[0].id

    with unit_of_work(db_session):
        result = fulfillment.deliver_order(db_session, order.id, {item_id: 6}, note="2 cases crushed", actor_id=5, now=NOW)

    assert result.to_status == OrderStatus.delivered
    assert len(result.discrepancies) == 1

    report = result.discrepancies[0]
    assert report.order_item_id == item_id
    assert report.shipped_quantity == 8
    assert report.received_quantity == 6
    assert report.difference == -2
    assert report.discrepancy_type == DiscrepancyType.shortage
    assert report.reported_by == 5

    assert stock_of(db_session, world.noodles, world.store).stock == 72
    assert stock_of(db_session, world.noodles, world.warehouse).stock == 4

    order = fulfillment.get_order(db_session, order.id)
    assert order.items[0].received_quantity == 6
    assert order.store_receive_note == "2 cases crushed"
    assert order.delivered_at is not None


def test_excess_credits_full_received_quantity(db_session, world):
    order = shipped_order(db_session, world, [(world.water, 2, "1")])
    item_id = order.items[0].id

    with unit_of_work(db_session):
        result = fulfillment.deliver_order(db_session, order.id, {item_id: 3}, now=NOW)

    report = result.discrepancies[0]
    assert report.discrepancy_type == DiscrepancyType.excess
    assert report.difference == 1
    assert stock_of(db_session, world.water, world.store).stock == 72


def test_matching_delivery_files_no_report(db_session, world):
    order = shipped_order(db_session, world, [(world.battery, 5, "1"), (world.water, 1, "1")])

    with unit_of_work(db_session):
        # lignes absentes : reçues à la quantité expédiée
        result = fulfillment.deliver_order(db_session, order.id, now=NOW)

    assert result.discrepancies == []
    assert db_session.execute(select(DiscrepancyReport)).scalars().all() == []
    assert stock_of(db_session, world.battery, world.store).stock == 5
    assert stock_of(db_session, world.water, world.store).stock == 24


def test_nothing_received_credits_nothing(db_session, world):
    order = shipped_order(db_session, world, [(world.battery, 5, "1")])
    item_id = order.items[0].id

    with unit_of_work(db_session):
        result = fulfillment.deliver_order(db_session, order.id, {item_id: 0}, now=NOW)

    assert result.discrepancies[0].difference == -5
    assert stock_of(db_session, world.battery, world.store) is None


def test_delivery_is_recorded_once(db_session, world):
    order = shipped_order(db_session, world, [(world.noodles, 8, "1")])
    item_id = order.items[0].id

    with unit_of_work(db_session):
        fulfillment.deliver_order(db_session, order.id, {item_id: 6}, now=NOW)

    with pytest.raises(InvalidTransition):
        with unit_of_work(db_session):
            fulfillment.deliver_order(db_session, order.id, {item_id: 8}, now=NOW)

    order = fulfillment.get_order(db_session, order.id)
    assert order.items[0].received_quantity == 6
    assert stock_of(db_session, world.noodles, world.store).stock == 72

    receipts = db_session.execute(
        select(StockMovement).where(StockMovement.movement_type == MovementType.receipt)
    ).scalars().all()
    assert len(receipts) == 1


def test_deliver_validates_payload(db_session, world):
    order = shipped_order(db_session, world, [(world.battery, 5, "1")])
    item_id = order.items[0].id

    with pytest.raises(NotFound):
        fulfillment.deliver_order(db_session, order.id, {item_id + 1000: 1}, now=NOW)
    db_session.rollback()

    with pytest.raises(InvalidQuantity):
        fulfillment.deliver_order(db_session, order.id, {item_id: -1}, now=NOW)
    db_session.rollback()

    assert fulfillment.get_order(db_session, order.id).status == OrderStatus.shipped


def test_deliver_requires_shipped_order(db_session, world):
    order = confirmed_order(db_session, world, [(world.battery, 5, "1")])
    with pytest.raises(InvalidTransition):
        fulfillment.deliver_order(db_session, order.id, now=NOW)


def test_upsert_reason_updates_the_same_report(db_session, world):
    order = shipped_order(db_session, world, [(world.noodles, 8, "1")])
    item_id = order.items[0].id
    with unit_of_work(db_session):
        fulfillment.deliver_order(db_session, order.id, {item_id: 6}, now=NOW)

    with unit_of_work(db_session):
        first = discrepancy.upsert_reason(db_session, item_id, "damaged in transit", actor_id=2)
    with unit_of_work(db_session):
        second = discrepancy.upsert_reason(db_session, item_id, "  counted twice  ", actor_id=3)

    assert first.id == second.id
    reports = discrepancy.list_reports(db_session, order_id=order.id)
    assert len(reports) == 1
    assert reports[0].reason == "counted twice"
    assert reports[0].reason_updated_by == 3

    order = fulfillment.get_order(db_session, order.id)
    assert order.items[0].discrepancy_reason == "counted twice"


def test_upsert_reason_without_discrepancy(db_session, world):
    order = shipped_order(db_session, world, [(world.battery, 5, "1")])
    item_id = order.items[0].id

    # pas encore livré
    with pytest.raises(NoDiscrepancy):
        discrepancy.upsert_reason(db_session, item_id, "why")

    with unit_of_work(db_session):
        fulfillment.deliver_order(db_session, order.id, now=NOW)

    with pytest.raises(NoDiscrepancy):
        discrepancy.upsert_reason(db_session, item_id, "why")

    with pytest.raises(NotFound):
        discrepancy.upsert_reason(db_session, 987654, "why")


def test_list_reports_filters_by_type(db_session, world):
    order = shipped_order(db_session, world, [(world.noodles, 8, "1"), (world.water, 2, "1")])
    noodles_item, water_item = order.items
    with unit_of_work(db_session):
        fulfillment.deliver_order(db_session, order.id, {noodles_item.id: 7, water_item.id: 3}, now=NOW)

    assert len(discrepancy.list_reports(db_session)) == 2
    excess = discrepancy.list_reports(db_session, discrepancy_type=DiscrepancyType.excess)
    assert [r.order_item_id for r in excess] == [water_item.id]


def test_deliver_rejects_item_listed_twice(db_session, world):
    order = shipped_order(db_session, world, [(world.battery, 6, "1")])
    item_id = order.items[0].id

    with pytest.raises(InvalidQuantity):
        with unit_of_work(db_session):
            fulfillment.deliver_order(db_session, order.id, [(item_id, 3), (item_id, 3)], now=NOW)

    order = fulfillment.get_order(db_session, order.id)
    assert order.status == OrderStatus.shipped
    assert order.items[0].received_quantity is None
    assert stock_of(db_session, world.battery, world.store) is None
    assert discrepancy.list_reports(db_session) == []

    # la livraison reste possible avec une saisie correcte
    with unit_of_work(db_session):
        result = fulfillment.deliver_order(db_session, order.id, [(item_id, 6)], now=NOW)
    assert result.discrepancies == []
    assert stock_of(db_session, world.battery, world.store).stock == 6
