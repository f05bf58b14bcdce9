from decimal import Decimal

import pytest

from money import format_amount, to_cents


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("874.99125")) == Decimal("874.99")
    assert to_cents(Decimal("0.005")) == Decimal("0.01")
    assert to_cents(Decimal("2125")) == Decimal("2125.00")


@pytest.mark.parametrize("amount, text", [
    (Decimal("0"), "₹0"),
    (Decimal("50"), "₹50"),
    (Decimal("999.5"), "₹999.5"),
    (Decimal("2125.00"), "₹2,125"),
    (Decimal("123456.78"), "₹1,23,456.78"),
    (Decimal("12345678"), "₹1,23,45,678"),
    (Decimal("-1500.25"), "-₹1,500.25"),
])
def test_format_amount_uses_indian_grouping(amount, text):
    assert format_amount(amount) == text


def test_format_amount_custom_symbol():
    assert format_amount(Decimal("1999.9"), symbol="Rs. ") == "Rs. 1,999.9"
