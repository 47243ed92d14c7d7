from decimal import Decimal

import pytest

from easy_amm.abis import MAX_UINT256
from easy_amm.core.units import from_base_units, to_base_units, to_decimal


def test_to_base_units_scales_by_decimals():
    assert to_base_units("1.5", 18) == 1_500_000_000_000_000_000
    assert to_base_units(1000, 0) == 1000
    assert to_base_units(Decimal("2.25"), 6) == 2_250_000


def test_to_base_units_truncates_extra_precision():
    assert to_base_units("0.1234567", 6) == 123456
    assert to_base_units("0.9", 0) == 0


def test_floats_are_read_through_str():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_base_units(0.1, 18) == 10**17


def test_from_base_units_is_exact():
    assert from_base_units(1_500_000, 6) == Decimal("1.5")
    assert from_base_units(1, 30) == Decimal("1e-30")


def test_uint256_survives_both_directions():
    human = from_base_units(MAX_UINT256, 18)
    assert to_base_units(human, 18) == MAX_UINT256


def test_thirty_decimals_supported():
    assert to_base_units("123456789.123456789123456789123456789", 30) == 123456789123456789123456789123456789000


@pytest.mark.parametrize("decimals", [-1, 78])
def test_rejects_bad_decimals(decimals):
    with pytest.raises(ValueError):
        to_base_units(1, decimals)
    with pytest.raises(ValueError):
        from_base_units(1, decimals)


def test_rejects_negative_amounts():
    with pytest.raises(ValueError):
        to_base_units("-1", 18)
    with pytest.raises(ValueError):
        from_base_units(-1, 18)
