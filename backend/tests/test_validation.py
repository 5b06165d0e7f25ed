"""
Input coercion tests.
"""

from decimal import Decimal

import pytest

from gestao.errors import ValidationFailed
from gestao.validation import to_cents, to_count, to_id, to_quantity


@pytest.mark.parametrize("value,expected", [(7, 7), ("7", 7), (" 12 ", 12), (Decimal("3"), 3)])
def test_to_id_accepts_whole_numbers(value, expected):
    assert to_id(value, "product_id") == expected


@pytest.mark.parametrize("value", [1.9, "1.9", Decimal("2.5"), "abc", 0, -4, True, None, ""])
def test_to_id_rejects_fractions_and_garbage(value):
    with pytest.raises(ValidationFailed):
        to_id(value, "product_id")


def test_to_quantity_keeps_three_decimals():
    assert to_quantity("1.25") == Decimal("1.250")
    with pytest.raises(ValidationFailed):
        to_quantity("0.0001")


def test_to_cents_rejects_fractional_amounts():
    with pytest.raises(ValidationFailed):
        to_cents("10.5", "amount_cents")
    assert to_cents("0", "amount_cents", allow_zero=True) == 0


def test_to_count_requires_positive():
    with pytest.raises(ValidationFailed):
        to_count(0, "installments")
