"""
Conversion colis <-> unité de base.

Pur, sans état. Facteur absent ou <= 1 : pas d'unité colis,
toutes les quantités sont déjà en unité de base.
"""

from __future__ import annotations


def normalize_conversion(conversion_factor: int | float | None) -> int:
    if not conversion_factor or conversion_factor <= 1:
        return 1
    return int(conversion_factor)


def has_package_unit(conversion_factor: int | float | None) -> bool:
    return normalize_conversion(conversion_factor) > 1


def to_base(qty_in_packages: int, conversion_factor: int | float | None) -> int:
    return int(qty_in_packages) * normalize_conversion(conversion_factor)


def to_packages(qty_in_base: int, conversion_factor: int | float | None) -> int:
    # arrondi vers le bas : un colis entamé n'est jamais disponible
    return int(qty_in_base) // normalize_conversion(conversion_factor)
