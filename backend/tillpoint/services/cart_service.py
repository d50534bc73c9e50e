# Overview: In-memory cart store and checkout draft for one terminal.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal

from ..errors import NegotiationNotAllowed, OutOfStock, PriceBelowFloor, ValidationError
from ..models import Product
from .pricing_service import (
    CartTotals,
    PricingMode,
    ZERO,
    cart_totals,
    floor_price,
    quantize,
    unit_price,
)

PAYMENT_METHODS = ("Cash", "Mobile Money", "Bank", "Credit")


@dataclass
class CartLine:
    product: Product
    quantity: int
    price: Decimal
    preferred_price: Decimal
    product_id: int = field(init=False)

    def __post_init__(self):
        # Kept apart from product so the line survives the product going stale
        self.product_id = self.product.id

    @property
    def total(self) -> Decimal:
        # Always derived; never stored on the line
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.product.name,
            "sku": self.product.sku,
            "quantity": self.quantity,
            "price": str(self.price),
            "preferred_price": str(self.preferred_price),
            "total": str(self.total),
        }


def rebuild_cart_for_mode(lines: list[CartLine], mode: PricingMode) -> list[CartLine]:
    """Re-price every line from scratch for mode, dropping any negotiation."""
    rebuilt = []
    for line in lines:
        price = unit_price(line.product, mode)
        rebuilt.append(replace(line, price=price, preferred_price=price))
    return rebuilt


class Cart:
    """
    Line items keyed by product, priced under one pricing mode.

    Stock limits are checked against the product's stock as loaded when it
    was added; nothing here writes to the record store.
    """

    def __init__(self, mode: PricingMode = PricingMode.RETAIL, *, allow_negative_stock: bool = False):
        self.mode = PricingMode.parse(mode)
        self.allow_negative_stock = allow_negative_stock
        self.lines: list[CartLine] = []

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find_line(self, product_id: int) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add_line(self, product: Product) -> CartLine:
        if product.stock_quantity <= 0 and not self.allow_negative_stock:
            raise OutOfStock(
                "Out of stock",
                details={"product_id": product.id, "stock_quantity": product.stock_quantity},
            )

        existing = self.find_line(product.id)
        if existing is not None:
            if existing.quantity >= product.stock_quantity and not self.allow_negative_stock:
                raise OutOfStock(
                    "Stock limit reached for this item",
                    details={"product_id": product.id, "stock_quantity": product.stock_quantity},
                )
            existing.quantity += 1
            return existing

        price = unit_price(product, self.mode)
        line = CartLine(product=product, quantity=1, price=price, preferred_price=price)
        self.lines.append(line)
        return line

    def change_quantity(self, product_id: int, delta: int) -> bool:
        """
        Nudge a line's quantity. Returns False when the change was ignored:
        dropping to zero or below (use remove_line) or exceeding stock.
        """
        line = self.find_line(product_id)
        if line is None:
            return False

        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            return False
        if delta > 0 and new_quantity > line.product.stock_quantity and not self.allow_negative_stock:
            return False

        line.quantity = new_quantity
        return True

    def remove_line(self, product_id: int) -> bool:
        before = len(self.lines)
        self.lines = [line for line in self.lines if line.product_id != product_id]
        return len(self.lines) != before

    def clear(self) -> None:
        self.lines = []

    def switch_mode(self, mode: PricingMode) -> None:
        self.mode = PricingMode.parse(mode)
        self.lines = rebuild_cart_for_mode(self.lines, self.mode)

    def negotiate_line(self, index: int, new_price: Decimal, new_quantity: int) -> CartLine:
        """Override one line's unit price and quantity, subject to the mode's floor."""
        if self.mode is PricingMode.WHOLESALE:
            raise NegotiationNotAllowed("Wholesale prices cannot be negotiated")

        if index < 0 or index >= len(self.lines):
            raise ValidationError(f"No cart line at index {index}")
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity <= 0:
            raise ValidationError("quantity must be a positive integer")

        line = self.lines[index]
        # Whole cents: line totals must sum to the subtotal exactly
        new_price = quantize(new_price)
        floor = floor_price(line.product, self.mode)
        if new_price < floor:
            raise PriceBelowFloor(
                "Price is below the minimum allowed",
                details={"product_id": line.product_id, "floor": str(floor), "price": str(new_price)},
            )
        if new_quantity > line.product.stock_quantity and not self.allow_negative_stock:
            raise OutOfStock(
                "Stock limit reached for this item",
                details={"product_id": line.product_id, "stock_quantity": line.product.stock_quantity},
            )

        line.price = new_price
        line.quantity = new_quantity
        return line

    def totals(self, global_discount_percent=0, *, tax_enabled: bool = False, tax_percentage=0) -> CartTotals:
        return cart_totals(
            self.lines,
            global_discount_percent,
            tax_enabled=tax_enabled,
            tax_percentage=tax_percentage,
        )

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass
class CheckoutDraft:
    """Transient payment state between opening checkout and commit/cancel."""
    payment_method: str = "Cash"
    amount_paid: Decimal = ZERO
    customer_name: str = ""
    customer_phone: str = ""
    global_discount_percent: Decimal = ZERO

    def update(
        self,
        *,
        payment_method: str | None = None,
        amount_paid: Decimal | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        global_discount_percent: Decimal | None = None,
    ) -> "CheckoutDraft":
        if payment_method is not None:
            if payment_method not in PAYMENT_METHODS:
                raise ValidationError(
                    f"Unknown payment method: {payment_method}",
                    details={"allowed": list(PAYMENT_METHODS)},
                )
            self.payment_method = payment_method
        if amount_paid is not None:
            amount_paid = Decimal(amount_paid)
            if amount_paid < ZERO:
                raise ValidationError("amount_paid must be >= 0")
            self.amount_paid = amount_paid
        if customer_name is not None:
            self.customer_name = customer_name.strip()
        if customer_phone is not None:
            self.customer_phone = customer_phone.strip()
        if global_discount_percent is not None:
            percent = Decimal(global_discount_percent)
            if percent < ZERO or percent > Decimal("100"):
                raise ValidationError("global_discount_percent must be between 0 and 100")
            self.global_discount_percent = percent
        return self

    def to_dict(self) -> dict:
        return {
            "payment_method": self.payment_method,
            "amount_paid": str(self.amount_paid),
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "global_discount_percent": str(self.global_discount_percent),
        }
