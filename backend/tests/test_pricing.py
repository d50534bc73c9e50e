# Overview: Pytest coverage for unit prices per pricing mode and cart totals.

from decimal import Decimal

import pytest

from tillpoint.errors import ValidationError
from tillpoint.models import Product
from tillpoint.services.cart_service import CartLine
from tillpoint.services.pricing_service import (
    PricingMode,
    cart_totals,
    floor_price,
    unit_price,
)


def _product(**overrides):
    fields = dict(
        id=1, sku="X", name="X",
        cost_price=Decimal("1000"), selling_price=Decimal("1500"),
        middle_man_price=None, min_selling_price=Decimal("1200"),
        stock_quantity=10,
    )
    fields.update(overrides)
    return Product(**fields)


def _line(product, quantity, price=None, preferred=None):
    preferred = Decimal(preferred if preferred is not None else product.selling_price)
    return CartLine(
        product=product,
        quantity=quantity,
        price=Decimal(price if price is not None else preferred),
        preferred_price=preferred,
    )


class TestPricingMode:
    @pytest.mark.parametrize("raw, expected", [
        ("Retail", PricingMode.RETAIL),
        ("wholesale", PricingMode.WHOLESALE),
        ("Middle Man", PricingMode.MIDDLE_MAN),
        ("middle_man", PricingMode.MIDDLE_MAN),
        (PricingMode.RETAIL, PricingMode.RETAIL),
    ])
    def test_parse(self, raw, expected):
        assert PricingMode.parse(raw) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValidationError):
            PricingMode.parse("VIP")


class TestUnitPrice:
    def test_retail_uses_selling_price(self):
        assert unit_price(_product(), PricingMode.RETAIL) == Decimal("1500")

    def test_wholesale_is_cost(self):
        assert unit_price(_product(), PricingMode.WHOLESALE) == Decimal("1000")

    def test_middle_man_price_when_set(self):
        product = _product(middle_man_price=Decimal("1300"))
        assert unit_price(product, PricingMode.MIDDLE_MAN) == Decimal("1300")

    @pytest.mark.parametrize("middle", [None, Decimal("0")])
    def test_middle_man_falls_back_to_retail(self, middle):
        product = _product(middle_man_price=middle)
        assert unit_price(product, PricingMode.MIDDLE_MAN) == Decimal("1500")


class TestFloorPrice:
    def test_retail_floor_is_min_selling_price(self):
        assert floor_price(_product(), PricingMode.RETAIL) == Decimal("1200")

    def test_retail_floor_falls_back_to_selling_price(self):
        assert floor_price(_product(min_selling_price=None), PricingMode.RETAIL) == Decimal("1500")

    def test_middle_man_floor_is_cost(self):
        assert floor_price(_product(), PricingMode.MIDDLE_MAN) == Decimal("1000")


class TestCartTotals:
    def test_tax_on_subtotal(self):
        totals = cart_totals([_line(_product(), 2)], tax_enabled=True, tax_percentage=18)
        assert totals.subtotal == Decimal("3000.00")
        assert totals.tax == Decimal("540.00")
        assert totals.total == Decimal("3540.00")

    def test_global_discount_before_tax(self):
        totals = cart_totals([_line(_product(), 2)], 10, tax_enabled=True, tax_percentage=18)
        assert totals.global_discount == Decimal("300.00")
        assert totals.discounted_subtotal == Decimal("2700.00")
        assert totals.tax == Decimal("486.00")
        assert totals.total == Decimal("3186.00")

    def test_item_discount_is_not_subtracted_twice(self):
        line = _line(_product(), 2, price="1300", preferred="1500")
        totals = cart_totals([line])
        assert totals.subtotal == Decimal("2600.00")
        assert totals.item_discount == Decimal("400.00")
        assert totals.total == Decimal("2600.00")

    def test_no_tax_when_disabled(self):
        totals = cart_totals([_line(_product(), 1)], tax_enabled=False, tax_percentage=18)
        assert totals.tax == Decimal("0.00")
        assert totals.total == Decimal("1500.00")

    def test_empty_cart_is_zero(self):
        totals = cart_totals([], tax_enabled=True, tax_percentage=18)
        assert totals.total == Decimal("0.00")

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_discount_out_of_range(self, percent):
        with pytest.raises(ValidationError):
            cart_totals([_line(_product(), 1)], percent)

    def test_to_dict_serializes_strings(self):
        data = cart_totals([_line(_product(), 1)]).to_dict()
        assert data["total"] == "1500.00"
