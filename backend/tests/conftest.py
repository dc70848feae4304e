import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

# la config lit DATABASE_URL à l'import : jamais la base réelle pendant les tests
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from backend.app.db.models.models_v1 import Base, Location, Product, StockLevel
from backend.app.db.models.core_types import LocationType
from backend.app.db.session import unit_of_work
from backend.services import fulfillment
from backend.services.fulfillment import ItemInput

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
TOMORROW = NOW + timedelta(days=1)


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Base isolée par test.

    SQLite fichier par défaut (plusieurs sessions possibles, utile pour les
    tests de concurrence), ou TEST_DATABASE_URL pour viser un Postgres.
    """
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+pysqlite:///{tmp_path / 'fulfillment.db'}"
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(url, connect_args=connect_args)

    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def add_product(db: Session, sku: str, *, conversion: int | None, warehouse, stock: int = 0, reorder_point: int = 0):
    product = Product(
        sku=sku,
        name=f"Product {sku}",
        base_unit="piece",
        package_unit="case" if conversion else None,
        package_conversion=conversion,
        active=True,
    )
    db.add(product)
    db.flush()
    db.add(
        StockLevel(
            product_id=product.id,
            location_id=warehouse.id,
            stock=stock,
            reserved_quantity=0,
            min_stock_level=0,
            reorder_point=reorder_point,
        )
    )
    db.flush()
    return product


@pytest.fixture(scope="function")
def world(db_session):
    """
    Entrepôt central + deux magasins + produits :
    - noodles : carton de 12, 100 pièces en stock (8 cartons entiers)
    - water   : pack de 24, 2400 pièces en stock
    - battery : pas d'unité colis, 50 pièces en stock
    """
    warehouse = Location(name="MAIN-WAREHOUSE", type=LocationType.warehouse)
    store = Location(name="STORE-001", type=LocationType.store)
    other_store = Location(name="STORE-002", type=LocationType.store)
    db_session.add_all([warehouse, store, other_store])
    db_session.flush()

    noodles = add_product(db_session, "NDL-CUP", conversion=12, warehouse=warehouse, stock=100)
    water = add_product(db_session, "WTR-500", conversion=24, warehouse=warehouse, stock=2400)
    battery = add_product(db_session, "BAT-AA", conversion=None, warehouse=warehouse, stock=50, reorder_point=10)
    db_session.commit()

    return SimpleNamespace(
        warehouse=warehouse,
        store=store,
        other_store=other_store,
        noodles=noodles,
        water=water,
        battery=battery,
    )


def stock_of(db: Session, product, location) -> StockLevel | None:
    return db.execute(
        select(StockLevel)
        .where(StockLevel.product_id == product.id)
        .where(StockLevel.location_id == location.id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def place_order(db: Session, world, lines, *, expected_delivery=TOMORROW, store=None):
    """lines : [(product, quantité en colis, prix unitaire)]"""
    with unit_of_work(db):
        order = fulfillment.create_order(
            db,
            target_location_id=(store or world.store).id,
            items=[ItemInput(p.id, qty, Decimal(str(price))) for p, qty, price in lines],
            expected_delivery=expected_delivery,
            created_by=7,
            now=NOW,
        )
    return order


def confirmed_order(db: Session, world, lines):
    order = place_order(db, world, lines)
    with unit_of_work(db):
        fulfillment.confirm_order(db, order.id, actor_id=1, now=NOW)
    return order


def shipped_order(db: Session, world, lines):
    order = confirmed_order(db, world, lines)
    with unit_of_work(db):
        fulfillment.ship_order(db, order.id, actor_id=1, now=NOW)
    return order
