import pytest
from decimal import Decimal

from app.utils.numbers import coerce_price, coerce_quantity


@pytest.mark.parametrize("value, expected", [
    (None, Decimal("0.00")),
    ("", Decimal("0.00")),
    ("abc", Decimal("0.00")),
    (-1, Decimal("0.00")),
    ("-0.5", Decimal("0.00")),
    (True, Decimal("0.00")),
    ("nan", Decimal("0.00")),
    (5, Decimal("5.00")),
    ("2.5", Decimal("2.50")),
    (" 3.456 ", Decimal("3.46")),
    (1.1, Decimal("1.10")),
])
def test_coerce_price(value, expected):
    assert coerce_price(value) == expected


@pytest.mark.parametrize("value, expected", [
    (None, 0),
    ("abc", 0),
    (-3, 0),
    (False, 0),
    ("12", 12),
    (7.9, 7),
    ("4.2", 4),
    (0, 0),
])
def test_coerce_quantity(value, expected):
    assert coerce_quantity(value) == expected
