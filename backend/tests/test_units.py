import pytest

from backend.services.units import has_package_unit, normalize_conversion, to_base, to_packages


def test_to_base_multiplies_by_conversion():
    assert to_base(10, 12) == 120
    assert to_base(0, 12) == 0


def test_to_packages_floors_partial_packages():
    # 100 pièces en cartons de 12 : 8 cartons entiers, jamais 8.33
    assert to_packages(100, 12) == 8
    assert to_packages(11, 12) == 0
    assert to_packages(96, 12) == 8


@pytest.mark.parametrize("factor", [None, 0, 1, -5, 0.5])
def test_missing_or_non_positive_factor_means_no_package_unit(factor):
    assert normalize_conversion(factor) == 1
    assert has_package_unit(factor) is False
    assert to_base(7, factor) == 7
    assert to_packages(7, factor) == 7


def test_has_package_unit():
    assert has_package_unit(24) is True


def test_round_trip_for_whole_package_counts():
    for factor in (None, 1, 6, 12, 24):
        for qty in (0, 1, 8, 250):
            assert to_packages(to_base(qty, factor), factor) == qty
