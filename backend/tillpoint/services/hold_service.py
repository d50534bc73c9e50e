"""
Hold store: suspended carts kept outside the record store.

The whole list lives in one JSON file (load whole list, mutate, save whole
list) so an interrupted sale survives a restart. Holding, resuming and
discarding never touch stock.
"""

from __future__ import annotations

import json
import os
import tempfile
import uuid
from dataclasses import asdict, dataclass, field

from flask import current_app

from ..errors import EntityNotFound, PersistenceFailure
from ..models import Product
from ..time_utils import to_utc_z, utcnow
from .cart_service import Cart, CartLine
from .pricing_service import PricingMode, quantize
from .storage import Collection


@dataclass
class HeldSale:
    id: str
    mode: str
    customer_label: str = ""
    note: str | None = None
    created_at: str = ""
    items: list[dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "HeldSale":
        return cls(
            id=data["id"],
            mode=data.get("mode", PricingMode.RETAIL.value),
            customer_label=data.get("customer_label") or "",
            note=data.get("note"),
            created_at=data.get("created_at") or "",
            items=list(data.get("items") or []),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def _snapshot_line(line: CartLine) -> dict:
    return {
        "product_id": line.product_id,
        "name": line.product.name,
        "sku": line.product.sku,
        "quantity": line.quantity,
        "price": str(line.price),
        "preferred_price": str(line.preferred_price),
    }


class HoldStore:
    def __init__(self, path: str):
        self.path = path

    @classmethod
    def for_app(cls, app=None) -> "HoldStore":
        app = app or current_app
        path = app.config.get("HELD_SALES_PATH") or os.path.join(app.instance_path, "held_sales.json")
        return cls(path)

    def _load(self) -> list[HeldSale]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure("Held sales could not be read", details={"path": self.path}) from exc
        if not isinstance(raw, list):
            raise PersistenceFailure("Held sales file is not a list", details={"path": self.path})
        try:
            return [HeldSale.from_dict(entry) for entry in raw]
        except (KeyError, TypeError, AttributeError) as exc:
            raise PersistenceFailure("Held sales file has malformed entries", details={"path": self.path}) from exc

    def _save(self, held: list[HeldSale]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump([h.to_dict() for h in held], fh, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceFailure("Held sales could not be saved", details={"path": self.path}) from exc

    def list(self) -> list[HeldSale]:
        return self._load()

    def get(self, held_id: str) -> HeldSale:
        for held in self._load():
            if held.id == held_id:
                return held
        raise EntityNotFound(f"Held sale {held_id} not found", details={"id": held_id})

    def hold(self, cart: Cart, *, customer_label: str = "", note: str | None = None) -> HeldSale:
        """Snapshot the cart into the list, persist the list, then empty the cart."""
        held = HeldSale(
            id=uuid.uuid4().hex[:12],
            mode=cart.mode.value,
            customer_label=customer_label or "",
            note=note or None,
            created_at=to_utc_z(utcnow()),
            items=[_snapshot_line(line) for line in cart.lines],
        )
        entries = self._load()
        entries.append(held)
        self._save(entries)
        cart.clear()
        return held

    def discard(self, held_id: str) -> None:
        entries = self._load()
        remaining = [h for h in entries if h.id != held_id]
        if len(remaining) == len(entries):
            raise EntityNotFound(f"Held sale {held_id} not found", details={"id": held_id})
        self._save(remaining)

    def restore_cart(self, held: HeldSale, *, allow_negative_stock: bool = False) -> Cart:
        """
        Rebuild a cart exactly as it was held: same lines, quantities,
        negotiated prices and pricing mode. Lines whose product has since
        been deleted are dropped with a warning.
        """
        cart = Cart(PricingMode.parse(held.mode), allow_negative_stock=allow_negative_stock)
        products = Collection(Product)
        for item in held.items:
            product = products.find(item["product_id"])
            if product is None:
                current_app.logger.warning(
                    "Held sale %s: product %s no longer exists; line dropped",
                    held.id, item["product_id"],
                )
                continue
            cart.lines.append(CartLine(
                product=product,
                quantity=int(item["quantity"]),
                price=quantize(item["price"]),
                preferred_price=quantize(item["preferred_price"]),
            ))
        return cart
