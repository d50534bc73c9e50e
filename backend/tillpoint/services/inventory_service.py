# Overview: Service-layer operations for stock; every stock mutation in the app goes through here.

# backend/tillpoint/services/inventory_service.py

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import EntityNotFound, ValidationError
from ..models import Product, Purchase, PurchaseItem
from .ledger_service import REASON_RESTOCK, append_stock_log
from .pricing_service import ZERO, quantize
from .settings_service import current_settings
from .storage import Collection, unit_of_work
"""
Stock Invariants (authoritative)

- Product.stock_quantity is a counter, changed only by:
    checkout (decrement), sale delete/edit (restore then reapply),
    manual adjustment, purchase receiving.
- Manual adjustments and receiving always append a stock log entry in the
  same unit of work. Sale-driven movement is logged only when
  LOG_SALE_STOCK_MOVEMENTS is enabled.
- Every write re-reads the product's current stock first; deltas are applied
  to what is stored now, not to a snapshot taken earlier.
"""


def apply_stock_delta(
    products: Collection,
    product_id: int,
    delta: int,
    *,
    user: str,
    reason: str,
    note: str | None = None,
    log: bool = False,
) -> Product | None:
    """
    Add delta to a product's stock. Returns None, writing nothing, when the
    product no longer exists.
    """
    product = products.find(product_id)
    if product is None:
        return None

    previous = product.stock_quantity
    new_stock = previous + delta
    products.update(product_id, stock_quantity=new_stock)
    if log:
        append_stock_log(
            product=product,
            previous_stock=previous,
            new_stock=new_stock,
            reason=reason,
            user=user,
            note=note,
            autocommit=products.autocommit,
        )
    return product


def adjust_stock(
    product_id: int,
    new_quantity: int,
    *,
    user: str,
    reason: str = "Restock",
    note: str | None = None,
) -> Product:
    """Manual stock adjustment to an absolute quantity, with an audit entry."""
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
        raise ValidationError("new_quantity must be an integer")
    settings = current_settings()
    if new_quantity < 0 and not settings.enable_negative_stock:
        raise ValidationError("new_quantity must be >= 0")
    if not reason or not reason.strip():
        raise ValidationError("reason is required")

    products = Collection(Product, autocommit=False)
    with unit_of_work():
        product = products.get(product_id)
        diff = new_quantity - product.stock_quantity
        if diff == 0:
            raise ValidationError("No change in quantity")
        apply_stock_delta(
            products, product_id, diff,
            user=user, reason=reason.strip(), note=note, log=True,
        )

    current_app.logger.info(
        "Stock adjusted: product=%s delta=%+d new=%s reason=%s user=%s",
        product_id, diff, new_quantity, reason, user,
    )
    return product


def receive_purchase(
    *,
    supplier_name: str,
    items: list[dict],
    user: str,
    invoice_no: str | None = None,
    note: str | None = None,
) -> Purchase:
    """
    Record a received supplier purchase and bring its items into stock.

    Each line raises stock by its quantity, sets the product's cost price to
    the latest unit cost and appends a Restock log entry.
    """
    if not supplier_name or not supplier_name.strip():
        raise ValidationError("supplier_name is required")
    if not items:
        raise ValidationError("Order is empty")

    products = Collection(Product, autocommit=False)
    lines = []
    for raw in items:
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer", details={"item": raw.get("product_id")})
        unit_cost = Decimal(str(raw.get("unit_cost", 0)))
        if unit_cost < ZERO:
            raise ValidationError("unit_cost must be >= 0", details={"item": raw.get("product_id")})
        product = products.find(raw.get("product_id"))
        if product is None:
            raise EntityNotFound(
                f"Product {raw.get('product_id')} not found",
                details={"product_id": raw.get("product_id")},
            )
        lines.append((product, quantity, unit_cost))

    purchase = Purchase(
        supplier_name=supplier_name.strip(),
        invoice_no=invoice_no,
        total_amount=quantize(sum((q * c for _, q, c in lines), ZERO)),
        status="Received",
        received_by=user,
        note=note,
        items=[
            PurchaseItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_cost=unit_cost,
                total_cost=quantize(quantity * unit_cost),
            )
            for product, quantity, unit_cost in lines
        ],
    )

    log_note = f"PO #{invoice_no or '-'} from {supplier_name.strip()}"
    with unit_of_work():
        Collection(Purchase, autocommit=False).add(purchase)
        for product, quantity, unit_cost in lines:
            apply_stock_delta(
                products, product.id, quantity,
                user=user, reason=REASON_RESTOCK, note=log_note, log=True,
            )
            products.update(product.id, cost_price=unit_cost)

    return purchase


def low_stock_products(threshold: int | None = None) -> list[Product]:
    """Products at or below their reorder level (or the global threshold)."""
    default_level = current_settings().low_stock_threshold if threshold is None else threshold
    low = []
    for product in Collection(Product).list():
        level = product.reorder_level if product.reorder_level is not None else default_level
        if product.stock_quantity <= level:
            low.append(product)
    return sorted(low, key=lambda p: (p.stock_quantity, p.name))


def search_products(term: str | None = None) -> list[Product]:
    """Catalog lookup by name or SKU substring, case-insensitive."""
    products = Collection(Product).list()
    if not term or not term.strip():
        return products
    needle = term.strip().lower()
    return [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]
