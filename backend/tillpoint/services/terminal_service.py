"""
Terminal session: one POS terminal's cart, pricing mode, checkout draft and
the held sale it was resumed from.

Cart and draft are in memory only. Abandoning a checkout or the whole
session writes nothing.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import EmptyCart, EntityNotFound, HoldConflict, ValidationError
from ..models import Product, Sale
from .cart_service import Cart, CartLine, CheckoutDraft
from .checkout_service import commit_sale
from .hold_service import HeldSale, HoldStore
from .pricing_service import CartTotals, PricingMode
from .settings_service import PosSettings, current_settings
from .storage import Collection

_REGISTRY_KEY = "tillpoint.terminals"


class TerminalSession:
    def __init__(
        self,
        terminal_id: str = "default",
        *,
        settings: PosSettings | None = None,
        hold_store: HoldStore | None = None,
    ):
        self.terminal_id = terminal_id
        self.settings = settings or current_settings()
        self.hold_store = hold_store or HoldStore.for_app()
        self.cart = Cart(PricingMode.RETAIL, allow_negative_stock=self.settings.enable_negative_stock)
        self.draft: CheckoutDraft | None = None
        self.resumed_hold_id: str | None = None

    def refresh(self) -> None:
        """
        Re-load every line's product in the current DB session so stock
        limits and names reflect what is stored now. Lines whose product was
        deleted are dropped.
        """
        products = Collection(Product)
        kept = []
        for line in self.cart.lines:
            product = products.find(line.product_id)
            if product is None:
                current_app.logger.warning(
                    "Terminal %s: product %s no longer exists; cart line dropped",
                    self.terminal_id, line.product_id,
                )
                continue
            line.product = product
            kept.append(line)
        self.cart.lines = kept

    # --- cart ---

    def add_to_cart(self, product_id: int) -> CartLine:
        product = Collection(Product).get(product_id)
        return self.cart.add_line(product)

    def change_quantity(self, product_id: int, delta: int) -> bool:
        return self.cart.change_quantity(product_id, delta)

    def remove_line(self, product_id: int) -> bool:
        return self.cart.remove_line(product_id)

    def clear_cart(self) -> None:
        self.cart.clear()
        self.draft = None
        self.resumed_hold_id = None

    def switch_pricing_mode(self, mode) -> None:
        self.cart.switch_mode(PricingMode.parse(mode))

    def negotiate_line(self, index: int, price: Decimal, quantity: int) -> CartLine:
        return self.cart.negotiate_line(index, price, quantity)

    def totals(self) -> CartTotals:
        percent = self.draft.global_discount_percent if self.draft else 0
        return self.cart.totals(
            percent,
            tax_enabled=self.settings.tax_enabled,
            tax_percentage=self.settings.tax_percentage,
        )

    # --- checkout ---

    def open_checkout(self) -> CheckoutDraft:
        if self.cart.is_empty:
            raise EmptyCart("Cart is empty")
        if self.draft is None:
            self.draft = CheckoutDraft()
        # Tendered amount starts at the amount due
        self.draft.amount_paid = self.totals().total
        return self.draft

    def set_payment(self, **fields) -> CheckoutDraft:
        if self.draft is None:
            raise ValidationError("Checkout is not open")
        return self.draft.update(**fields)

    def cancel_checkout(self) -> None:
        self.draft = None

    def commit(self, cashier: str) -> Sale:
        if self.draft is None:
            raise ValidationError("Checkout is not open")
        sale = commit_sale(
            self.cart,
            self.draft,
            cashier,
            held_sale_id=self.resumed_hold_id,
            hold_store=self.hold_store,
            settings=self.settings,
        )
        self.draft = None
        self.resumed_hold_id = None
        return sale

    # --- holds ---

    def hold(self, *, note: str | None = None, customer_label: str | None = None) -> HeldSale:
        if self.cart.is_empty:
            raise EmptyCart("Cart is empty")
        if customer_label is None and self.draft is not None:
            customer_label = self.draft.customer_name
        held = self.hold_store.hold(self.cart, customer_label=customer_label or "", note=note)
        if self.resumed_hold_id is not None:
            # The cart came from an earlier hold; the new snapshot supersedes it
            try:
                self.hold_store.discard(self.resumed_hold_id)
            except EntityNotFound:
                pass
        self.draft = None
        self.resumed_hold_id = None
        return held

    def list_holds(self) -> list[HeldSale]:
        return self.hold_store.list()

    def resume(self, held_id: str, *, confirm_discard: bool = False) -> HeldSale:
        held = self.hold_store.get(held_id)
        if not self.cart.is_empty and not confirm_discard:
            raise HoldConflict(
                "Current cart is not empty; confirm discarding it to resume",
                details={"held_sale_id": held_id, "cart_lines": len(self.cart)},
            )
        self.cart = self.hold_store.restore_cart(
            held, allow_negative_stock=self.settings.enable_negative_stock,
        )
        self.resumed_hold_id = held.id
        self.draft = None
        if not self.cart.is_empty:
            self.open_checkout()
            if held.customer_label:
                self.draft.customer_name = held.customer_label
        return held

    def discard_hold(self, held_id: str) -> None:
        self.hold_store.discard(held_id)
        if self.resumed_hold_id == held_id:
            self.resumed_hold_id = None

    def to_dict(self) -> dict:
        return {
            "terminal_id": self.terminal_id,
            "cart": self.cart.to_dict(),
            "totals": self.totals().to_dict(),
            "draft": self.draft.to_dict() if self.draft else None,
            "resumed_hold_id": self.resumed_hold_id,
        }


def get_terminal(terminal_id: str) -> TerminalSession:
    """Process-wide session for terminal_id, created on first use."""
    registry = current_app.extensions.setdefault(_REGISTRY_KEY, {})
    session = registry.get(terminal_id)
    if session is None:
        session = TerminalSession(terminal_id)
        registry[terminal_id] = session
    else:
        session.refresh()
    return session


def reset_terminals() -> None:
    current_app.extensions[_REGISTRY_KEY] = {}
