"""
Pricing engine: unit prices per customer pricing mode and cart totals.

Everything here is a pure function of its arguments. Nothing reads the
database or mutates the objects passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable

from ..errors import ValidationError
from ..models import Product

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


class PricingMode(str, Enum):
    RETAIL = "Retail"
    WHOLESALE = "Wholesale"
    MIDDLE_MAN = "Middle Man"

    @classmethod
    def parse(cls, value) -> "PricingMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.replace("_", "").replace(" ", "").replace("-", "").lower()
            for mode in cls:
                if mode.value.replace(" ", "").lower() == normalized:
                    return mode
        raise ValidationError(
            f"Unknown pricing mode: {value!r}",
            details={"allowed": [m.value for m in cls]},
        )


def unit_price(product: Product, mode: PricingMode) -> Decimal:
    """Mode-derived unit price before any negotiation, in whole cents."""
    if mode is PricingMode.WHOLESALE:
        # Wholesale is cost pass-through; margin comes from elsewhere
        return quantize(product.cost_price or 0)
    if mode is PricingMode.MIDDLE_MAN:
        if product.middle_man_price:
            return quantize(product.middle_man_price)
        return quantize(product.selling_price or 0)
    return quantize(product.selling_price or 0)


def floor_price(product: Product, mode: PricingMode) -> Decimal:
    """Lowest unit price a line may be negotiated down to."""
    if mode is PricingMode.RETAIL:
        if product.min_selling_price:
            return Decimal(product.min_selling_price)
        return Decimal(product.selling_price or 0)
    # Middle-man floor is cost; wholesale lines are never negotiated
    return Decimal(product.cost_price or 0)


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    item_discount: Decimal
    global_discount_percent: Decimal
    global_discount: Decimal
    total_discount: Decimal
    discounted_subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {key: str(value) for key, value in self.__dict__.items()}


def cart_totals(
    lines: Iterable,
    global_discount_percent: Decimal | int | str = 0,
    *,
    tax_enabled: bool = False,
    tax_percentage: Decimal | int | str = 0,
) -> CartTotals:
    """
    Aggregate totals for a set of priced lines.

    Lines need quantity, price, preferred_price and total. The item-level
    discount is informational: negotiated prices already lowered each line
    total, so it is never subtracted from the subtotal a second time.
    """
    percent = Decimal(str(global_discount_percent or 0))
    if percent < ZERO or percent > HUNDRED:
        raise ValidationError("global discount must be between 0 and 100")

    subtotal = ZERO
    item_discount = ZERO
    for line in lines:
        subtotal += Decimal(line.total)
        markdown = Decimal(line.preferred_price) - Decimal(line.price)
        if markdown > ZERO:
            item_discount += markdown * line.quantity

    global_discount = quantize(subtotal * percent / HUNDRED)
    discounted_subtotal = subtotal - global_discount
    tax = ZERO
    if tax_enabled:
        tax = quantize(discounted_subtotal * Decimal(str(tax_percentage)) / HUNDRED)

    return CartTotals(
        subtotal=quantize(subtotal),
        item_discount=quantize(item_discount),
        global_discount_percent=percent,
        global_discount=global_discount,
        total_discount=quantize(item_discount + global_discount),
        discounted_subtotal=quantize(discounted_subtotal),
        tax=quantize(tax),
        total=quantize(discounted_subtotal + tax),
    )
