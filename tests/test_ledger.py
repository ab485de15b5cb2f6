"""Tests for order totals and clothing item ids."""

from types import SimpleNamespace

import pytest

from laundry_service.exceptions import ValidationError
from laundry_service.schemas.order import ClothingItemCreate, OrderItemCreate
from laundry_service.services import ledger


def line(quantity=1, unit_price=10.0, clothing=()):
    return OrderItemCreate(
        service_id="svc",
        service_name="Service",
        quantity=quantity,
        unit_price=unit_price,
        clothing_items=[ClothingItemCreate(description=d, unit_price=p) for d, p in clothing],
    )


def test_default_charges_on_simple_order():
    """3 x 10.0 with default tax and delivery gives 30 / 3 / 5 / 38."""
    totals = ledger.compute_totals([line(quantity=3, unit_price=10.0)])

    assert totals.subtotal == 30.0
    assert totals.tax == 3.0
    assert totals.delivery_fee == 5.0
    assert totals.discount == 0.0
    assert totals.total_amount == 38.0


def test_line_total_prefers_clothing_items():
    item = line(quantity=5, unit_price=10.0, clothing=[("Shirt", 4.5), ("Trousers", 6.0)])
    assert ledger.line_total(item) == 10.5


def test_urgent_orders_pay_surcharge():
    totals = ledger.compute_totals([line(unit_price=20.0)], is_urgent=True)
    assert totals.delivery_fee == 10.0
    assert totals.total_amount == 20.0 + 2.0 + 10.0


def test_explicit_charges_are_kept():
    totals = ledger.compute_totals([line(unit_price=50.0)], tax=0.0, delivery_fee=0.0, discount=12.5)
    assert totals.tax == 0.0
    assert totals.delivery_fee == 0.0
    assert totals.total_amount == 37.5


def test_totals_invariant_holds_with_rounding():
    totals = ledger.compute_totals([line(quantity=3, unit_price=3.33), line(unit_price=0.1)], discount=0.07)
    assert totals.total_amount == round(totals.subtotal + totals.tax + totals.delivery_fee - totals.discount, 2)


@pytest.mark.parametrize("kwargs", [{"tax": -1.0}, {"delivery_fee": -0.01}, {"discount": -5.0}])
def test_negative_components_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        ledger.compute_totals([line()], **kwargs)


def test_discount_larger_than_charges_is_rejected():
    with pytest.raises(ValidationError):
        ledger.compute_totals([line(unit_price=10.0)], discount=100.0)


def test_negative_unit_price_is_rejected():
    bad = SimpleNamespace(quantity=1, unit_price=-2.0, clothing_items=[])
    with pytest.raises(ValidationError):
        ledger.line_total(bad)


def test_generate_item_id_counts_across_lines():
    order = SimpleNamespace(order_number="ORD-1A2B3C4D", clothing_items=[object(), object()])
    assert ledger.generate_item_id(order) == "ORD-1A2B3C4D-003"


def test_apply_totals_keeps_overrides_and_rederives_defaults():
    item = SimpleNamespace(quantity=2, unit_price=10.0, clothing_items=[], line_total=0.0)
    order = SimpleNamespace(
        items=[item],
        tax=1.0,
        tax_overridden=True,
        delivery_fee=99.0,
        delivery_fee_overridden=False,
        discount=0.0,
        is_urgent=False,
        subtotal=0.0,
        total_amount=0.0,
    )

    ledger.apply_totals(order)

    assert item.line_total == 20.0
    assert order.tax == 1.0
    assert order.delivery_fee == 5.0
    assert order.total_amount == 26.0


def test_quantity_pricing_with_default_charges():
    """2 x 15.0 prices the same as 3 x 10.0."""
    totals = ledger.compute_totals([line(quantity=2, unit_price=15.0)])
    assert (totals.subtotal, totals.tax, totals.delivery_fee, totals.total_amount) == (30.0, 3.0, 5.0, 38.0)
