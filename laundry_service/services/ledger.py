"""
Money & item ledger.

Pure functions: order totals are always recomputed from line items and
charges, never trusted from input. Items are duck-typed so the same code
serves request schemas and ORM rows (``quantity``, ``unit_price`` and an
optional ``clothing_items`` sequence whose entries carry ``unit_price``).
"""
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from laundry_service.config import settings
from laundry_service.exceptions import ValidationError


class OrderTotals(BaseModel):
    subtotal: float
    tax: float
    delivery_fee: float
    discount: float
    total_amount: float

    model_config = ConfigDict(frozen=True)


def _money(value: float) -> float:
    return round(value + 0.0, 2)


def _require_non_negative(name: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise ValidationError(f"{name} cannot be negative (got {value})")


def line_total(item) -> float:
    """Sum of garment prices when garments are listed, quantity x unit price otherwise"""
    _require_non_negative("unit_price", item.unit_price)
    if item.quantity is not None and item.quantity < 1:
        raise ValidationError(f"quantity must be at least 1 (got {item.quantity})")

    clothing_items = getattr(item, "clothing_items", None) or []
    if clothing_items:
        for ci in clothing_items:
            _require_non_negative("clothing item unit_price", ci.unit_price)
        return _money(sum(ci.unit_price for ci in clothing_items))
    return _money(item.quantity * item.unit_price)


def default_delivery_fee(is_urgent: bool) -> float:
    fee = settings.BASE_DELIVERY_FEE
    if is_urgent:
        fee += settings.URGENT_DELIVERY_SURCHARGE
    return _money(fee)


def compute_totals(
    items: Iterable,
    tax: Optional[float] = None,
    delivery_fee: Optional[float] = None,
    discount: float = 0.0,
    is_urgent: bool = False,
) -> OrderTotals:
    """
    Compute order totals

    Args:
        items: Order lines
        tax: Explicit tax; defaults to TAX_RATE of the subtotal when None
        delivery_fee: Explicit fee; defaults to the base fee (plus surcharge when urgent)
        discount: Discount subtracted from the total
        is_urgent: Whether the order uses urgent delivery

    Returns:
        OrderTotals with total_amount = subtotal + tax + delivery_fee - discount

    Raises:
        ValidationError: If a component is negative or the discount exceeds the charges
    """
    _require_non_negative("tax", tax)
    _require_non_negative("delivery_fee", delivery_fee)
    _require_non_negative("discount", discount)

    subtotal = _money(sum(line_total(item) for item in items))
    if tax is None:
        tax = subtotal * settings.TAX_RATE
    if delivery_fee is None:
        delivery_fee = default_delivery_fee(is_urgent)
    discount = discount or 0.0

    tax = _money(tax)
    delivery_fee = _money(delivery_fee)
    discount = _money(discount)
    total = _money(subtotal + tax + delivery_fee - discount)
    if total < 0:
        raise ValidationError(
            f"Discount {discount} exceeds order charges {_money(subtotal + tax + delivery_fee)}"
        )

    return OrderTotals(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=delivery_fee,
        discount=discount,
        total_amount=total,
    )


def apply_totals(order) -> OrderTotals:
    """Refresh line totals and the cached money fields of an ORM order"""
    for item in order.items:
        item.line_total = line_total(item)

    totals = compute_totals(
        order.items,
        tax=order.tax if order.tax_overridden else None,
        delivery_fee=order.delivery_fee if order.delivery_fee_overridden else None,
        discount=order.discount,
        is_urgent=order.is_urgent,
    )
    order.subtotal = totals.subtotal
    order.tax = totals.tax
    order.delivery_fee = totals.delivery_fee
    order.discount = totals.discount
    order.total_amount = totals.total_amount
    return totals


def generate_item_id(order) -> str:
    """
    Clothing item id unique within an order: <order number>-<count + 1, 3 digits>.

    Callers must hold the order lock while generating and appending.
    """
    return f"{order.order_number}-{len(order.clothing_items) + 1:03d}"
