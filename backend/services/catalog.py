"""
Accès aux collaborateurs externes : catalogue produit et locations.

Le moteur ne lit QUE ce dont il a besoin (facteur de conversion, libellés
d'unités, entrepôt central). Le CRUD catalogue est hors périmètre.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.models_v1 import Location, Product
from backend.app.db.models.core_types import LocationType
from backend.services.errors import NotFound
from backend.services.units import normalize_conversion


@dataclass(frozen=True)
class ProductUnits:
    product_id: int
    name: str
    package_conversion: int
    base_unit: str
    package_unit: str | None


def get_product_units(db: Session, product_id: int) -> ProductUnits:
    product = db.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found")

    conversion = normalize_conversion(product.package_conversion)
    return ProductUnits(
        product_id=int(product.id),
        name=product.name,
        package_conversion=conversion,
        base_unit=product.base_unit,
        package_unit=product.package_unit if conversion > 1 else None,
    )


def get_location(db: Session, location_id: int) -> Location:
    loc = db.get(Location, location_id)
    if not loc:
        raise NotFound(f"Location {location_id} not found")
    return loc


def get_warehouse_location_id(db: Session) -> int:
    """
    Retourne l'id de l'entrepôt central.
    Priorité au nom configuré, sinon premier entrepôt trouvé.
    """
    loc = (
        db.execute(
            select(Location)
            .where(Location.type == LocationType.warehouse)
            .where(Location.name == settings.warehouse_location_name)
        )
        .scalars()
        .first()
    )
    if loc:
        return int(loc.id)

    loc = (
        db.execute(
            select(Location)
            .where(Location.type == LocationType.warehouse)
            .order_by(Location.id.asc())
        )
        .scalars()
        .first()
    )
    if not loc:
        raise NotFound("No warehouse location configured")

    return int(loc.id)
