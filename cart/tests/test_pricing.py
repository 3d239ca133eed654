from decimal import Decimal
from types import SimpleNamespace

from cart.pricing import ZERO, calculate_totals, round2


def line(price, quantity=1):
    return SimpleNamespace(unit_price=Decimal(price), quantity=quantity)


def test_empty_cart_totals_are_zero():
    totals = calculate_totals([])
    assert totals == {"items_total": ZERO, "shipping_total": ZERO, "tax_total": ZERO, "grand_total": ZERO}


def test_grand_total_is_sum_of_parts():
    totals = calculate_totals([line("250.00", 2), line("99.99")])
    assert totals["items_total"] == Decimal("599.99")
    assert totals["shipping_total"] == Decimal("150.00")
    assert totals["tax_total"] == Decimal("0.00")
    assert totals["grand_total"] == round2(totals["items_total"] + totals["shipping_total"] + totals["tax_total"])
    assert totals["grand_total"] == Decimal("749.99")


def test_items_total_rounds_once_half_up():
    totals = calculate_totals([line("33.335"), line("0.004"), line("0.001")])
    assert totals["items_total"] == Decimal("33.34")


def test_free_shipping_threshold_is_exclusive():
    at_threshold = calculate_totals([line("1000.00")])
    assert at_threshold["shipping_total"] == Decimal("150.00")
    assert at_threshold["grand_total"] == Decimal("1150.00")

    above = calculate_totals([line("1000.01")])
    assert above["shipping_total"] == ZERO
    assert above["grand_total"] == Decimal("1000.01")


def test_round2_handles_binary_float_artifacts():
    assert round2(10.005) == Decimal("10.01")
    assert round2(1.005) == Decimal("1.01")
    assert round2(Decimal("2.345")) == Decimal("2.35")
    assert round2("7") == Decimal("7.00")


def test_policy_settings_override_defaults(settings):
    settings.CART_SHIPPING_FEE = "75.50"
    settings.CART_FREE_SHIPPING_THRESHOLD = "500"
    settings.CART_TAX_RATE = "0.15"

    small = calculate_totals([line("100.00")])
    assert small["shipping_total"] == Decimal("75.50")
    assert small["tax_total"] == Decimal("15.00")
    assert small["grand_total"] == Decimal("190.50")

    large = calculate_totals([line("500.01")])
    assert large["shipping_total"] == ZERO
    assert large["tax_total"] == Decimal("75.00")
