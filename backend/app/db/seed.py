from __future__ import annotations

from sqlalchemy import select

from backend.app.core.config import settings
from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import Location, Product, StockLevel
from backend.app.db.models.core_types import LocationType

LOCATIONS = [
    (settings.warehouse_location_name, LocationType.warehouse, "Central warehouse"),
    ("STORE-001", LocationType.store, "Downtown store"),
    ("STORE-002", LocationType.store, "Riverside store"),
]

# sku, name, base_unit, package_unit, conversion, stock entrepôt (unité de base), reorder_point
PRODUCTS = [
    ("WTR-500", "Mineral water 500ml", "bottle", "case", 24, 2400, 240),
    ("NDL-CUP", "Cup noodles", "cup", "carton", 12, 600, 120),
    ("MLK-1L", "Fresh milk 1L", "bottle", "crate", 6, 180, 60),
    ("BAT-AA", "AA battery", "piece", None, None, 500, 50),
]


def run_seed():
    db = SessionLocal()
    try:
        locations = {}
        for name, type_, address in LOCATIONS:
            loc = db.scalar(select(Location).where(Location.name == name))
            if not loc:
                loc = Location(name=name, type=type_, address=address)
                db.add(loc)
                db.flush()
            locations[name] = loc

        warehouse = locations[settings.warehouse_location_name]
        for sku, name, base_unit, package_unit, conversion, stock, reorder_point in PRODUCTS:
            product = db.scalar(select(Product).where(Product.sku == sku))
            if not product:
                product = Product(
                    sku=sku,
                    name=name,
                    base_unit=base_unit,
                    package_unit=package_unit,
                    package_conversion=conversion,
                    active=True,
                )
                db.add(product)
                db.flush()

            if not db.get(StockLevel, (product.id, warehouse.id)):
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

        db.commit()
        print(f"SEED OK: {len(LOCATIONS)} locations, {len(PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
