"""Tests for order pricing rules."""
from decimal import Decimal

import pytest

from orders.pricing import calculate_totals, to_minor_units, to_money


def test_free_shipping_over_threshold():
    totals = calculate_totals([(Decimal("50.00"), 3)])

    assert totals.subtotal == Decimal("150.00")
    assert totals.tax == Decimal("12.00")
    assert totals.shipping == Decimal("0.00")
    assert totals.discount == Decimal("0.00")
    assert totals.total == Decimal("162.00")


def test_save10_takes_ten_percent_of_subtotal():
    totals = calculate_totals([(Decimal("50.00"), 3)], promo_code="SAVE10")

    assert totals.discount == Decimal("15.00")
    assert totals.total == Decimal("147.00")


def test_flat_shipping_at_or_below_threshold():
    assert calculate_totals([(Decimal("100.00"), 1)]).shipping == Decimal("10.00")
    assert calculate_totals([(Decimal("100.01"), 1)]).shipping == Decimal("0.00")


def test_freeship_discounts_the_shipping_fee():
    totals = calculate_totals([(Decimal("20.00"), 2)], promo_code="FREESHIP")

    assert totals.shipping == Decimal("10.00")
    assert totals.discount == Decimal("10.00")
    assert totals.total == Decimal("43.20")


def test_unknown_promo_code_is_ignored():
    totals = calculate_totals([(Decimal("20.00"), 2)], promo_code="BOGUS")

    assert totals.discount == Decimal("0.00")
    assert totals.total == Decimal("53.20")


def test_explicit_shipping_overrides_policy():
    totals = calculate_totals([(Decimal("50.00"), 3)], shipping="7.5")

    assert totals.shipping == Decimal("7.50")
    assert totals.total == Decimal("169.50")


def test_total_identity_holds():
    totals = calculate_totals([(Decimal("19.99"), 3), (Decimal("5.25"), 1)], promo_code="SAVE10")

    assert totals.total == totals.subtotal + totals.tax + totals.shipping - totals.discount


def test_tax_rounds_to_cents():
    totals = calculate_totals([(Decimal("3.31"), 1)])

    assert totals.tax == Decimal("0.26")


def test_minor_units():
    assert to_minor_units(Decimal("162.00")) == 16200
    assert to_minor_units(Decimal("0.30")) == 30
    assert to_minor_units(Decimal("19.995")) == 2000


@pytest.mark.parametrize("value", ["abc", None, "NaN", True])
def test_to_money_rejects_invalid_amounts(value):
    with pytest.raises(ValueError):
        to_money(value)
