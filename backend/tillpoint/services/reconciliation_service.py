"""
Sale reconciliation: delete or edit a committed sale and put stock right.

Edit runs in two passes: every original line is reverted, then every
edited line is applied. Lines added or removed by the edit need no special
handling. Each write re-reads the product's current stock.

Missing products are not fatal: the line's stock effect is skipped with a
partial-integrity warning and the sale operation carries on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from ..errors import PersistenceFailure, ValidationError
from ..models import Product, Sale, SaleItem
from ..time_utils import utcnow
from .inventory_service import apply_stock_delta
from .ledger_service import REASON_SALE_DELETED, REASON_SALE_EDIT, REASON_SALE_EDIT_REVERSAL
from .pricing_service import HUNDRED, ZERO, quantize
from .settings_service import PosSettings, current_settings
from .storage import Collection, unit_of_work


@dataclass
class ReconciliationResult:
    sale_id: int
    receipt_no: str
    # product_id -> net stock change applied by this operation
    stock_changes: dict[int, int] = field(default_factory=dict)
    skipped_product_ids: list[int] = field(default_factory=list)

    def record(self, product_id: int, delta: int) -> None:
        self.stock_changes[product_id] = self.stock_changes.get(product_id, 0) + delta

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "receipt_no": self.receipt_no,
            "stock_changes": {str(k): v for k, v in self.stock_changes.items()},
            "skipped_product_ids": self.skipped_product_ids,
        }


def _collections(settings: PosSettings) -> tuple[Collection, Collection]:
    atomic = settings.atomic_stock_writes
    return (
        Collection(Sale, autocommit=not atomic),
        Collection(Product, autocommit=not atomic, lock=settings.stock_row_locking),
    )


def _move_stock(
    products: Collection,
    result: ReconciliationResult,
    product_id: int,
    delta: int,
    *,
    user: str,
    reason: str,
    log: bool,
) -> None:
    product = apply_stock_delta(
        products, product_id, delta,
        user=user, reason=reason, note=f"Sale {result.receipt_no}", log=log,
    )
    if product is None:
        current_app.logger.warning(
            "Sale %s: product %s no longer exists; stock change of %+d skipped",
            result.receipt_no, product_id, delta,
        )
        if product_id not in result.skipped_product_ids:
            result.skipped_product_ids.append(product_id)
        return
    result.record(product_id, delta)


def _report_failure(exc: PersistenceFailure, action: str, result: ReconciliationResult, atomic: bool) -> None:
    exc.details.update({
        "action": action,
        "sale_id": result.sale_id,
        "receipt_no": result.receipt_no,
        "stock_persisted": not atomic and bool(result.stock_changes),
        "applied_stock_changes": {str(k): v for k, v in result.stock_changes.items()},
    })
    current_app.logger.error(
        "Sale %s %s failed (atomic=%s, stock changes applied=%s): %s",
        result.receipt_no, action, atomic, result.stock_changes, exc,
    )


def list_sales() -> list[Sale]:
    """Committed sales, newest first."""
    return sorted(Collection(Sale).list(), key=lambda s: (s.created_at, s.id), reverse=True)


def get_sale(sale_id: int) -> Sale:
    return Collection(Sale).get(sale_id)


def delete_sale(sale_id: int, *, user: str, settings: PosSettings | None = None) -> ReconciliationResult:
    """Give every original line's quantity back to stock, then remove the sale."""
    settings = settings or current_settings()
    sales, products = _collections(settings)

    sale = sales.get(sale_id)
    result = ReconciliationResult(sale_id=sale.id, receipt_no=sale.receipt_no)
    original = [(item.product_id, item.quantity) for item in sale.items]

    try:
        with unit_of_work(atomic=settings.atomic_stock_writes):
            for product_id, quantity in original:
                _move_stock(
                    products, result, product_id, quantity,
                    user=user, reason=REASON_SALE_DELETED, log=settings.log_sale_stock_movements,
                )
            sales.delete(sale_id)
    except PersistenceFailure as exc:
        _report_failure(exc, "delete", result, settings.atomic_stock_writes)
        raise

    current_app.logger.info("Sale %s deleted by %s", result.receipt_no, user)
    return result


def _coerce_edited_items(edited_items: list[dict], sale: Sale) -> list[SaleItem]:
    if not edited_items:
        raise ValidationError("A sale must keep at least one item; delete the sale instead")

    originals = {item.product_id: item for item in sale.items}
    coerced = []
    for position, raw in enumerate(edited_items):
        product_id = raw.get("product_id")
        if product_id is None:
            raise ValidationError("product_id is required", details={"position": position})
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer", details={"position": position})
        try:
            price = Decimal(str(raw.get("price")))
        except ArithmeticError:
            raise ValidationError("price must be numeric", details={"position": position})
        if not price.is_finite() or price < ZERO:
            raise ValidationError("price must be >= 0", details={"position": position})
        price = quantize(price)

        previous = originals.get(product_id)
        name = raw.get("name") or (previous.name if previous else None)
        if name is None:
            product = Collection(Product).find(product_id)
            name = product.name if product else f"Product {product_id}"
        original_price = raw.get("original_price")
        if original_price is None and previous is not None:
            original_price = previous.original_price

        coerced.append(SaleItem(
            position=position,
            product_id=product_id,
            name=name,
            sku=raw.get("sku") or (previous.sku if previous else None),
            quantity=quantity,
            price=price,
            original_price=quantize(Decimal(str(original_price))) if original_price is not None else None,
            total=quantize(price * quantity),
        ))
    return coerced


def update_sale(
    sale_id: int,
    edited_items: list[dict],
    *,
    user: str,
    settings: PosSettings | None = None,
) -> tuple[Sale, ReconciliationResult]:
    """
    Replace a committed sale's items and recompute its totals.

    Stock: every original line is reverted (+qty), then every edited line is
    applied (-qty). Totals: subtotal from the edited items, tax on the full
    subtotal when enabled. The original global discount is not re-applied;
    discount and its percentage are reset to zero so that
    total == subtotal - discount + tax still holds.
    """
    settings = settings or current_settings()
    sales, products = _collections(settings)

    sale = sales.get(sale_id)
    new_items = _coerce_edited_items(edited_items, sale)
    result = ReconciliationResult(sale_id=sale.id, receipt_no=sale.receipt_no)
    original = [(item.product_id, item.quantity) for item in sale.items]
    log = settings.log_sale_stock_movements

    subtotal = quantize(sum((item.total for item in new_items), ZERO))
    tax = ZERO
    if settings.tax_enabled:
        tax = quantize(subtotal * settings.tax_percentage / HUNDRED)
    total = quantize(subtotal + tax)
    item_discount = ZERO
    for item in new_items:
        if item.original_price is not None and item.original_price > item.price:
            item_discount += (item.original_price - item.price) * item.quantity
    amount_paid = Decimal(sale.amount_paid)

    try:
        with unit_of_work(atomic=settings.atomic_stock_writes):
            for product_id, quantity in original:
                _move_stock(
                    products, result, product_id, quantity,
                    user=user, reason=REASON_SALE_EDIT_REVERSAL, log=log,
                )
            for item in new_items:
                _move_stock(
                    products, result, item.product_id, -item.quantity,
                    user=user, reason=REASON_SALE_EDIT, log=log,
                )
            sale = sales.update(
                sale_id,
                items=new_items,
                subtotal=subtotal,
                discount=ZERO,
                global_discount_percentage=ZERO,
                item_discount=quantize(item_discount),
                tax=tax,
                total=total,
                change_due=quantize(max(amount_paid - total, ZERO)),
                balance_due=quantize(max(total - amount_paid, ZERO)),
                edited_at=utcnow(),
                edited_by=user,
            )
    except PersistenceFailure as exc:
        _report_failure(exc, "edit", result, settings.atomic_stock_writes)
        raise

    current_app.logger.info(
        "Sale %s edited by %s: total=%s stock_changes=%s",
        result.receipt_no, user, total, result.stock_changes,
    )
    return sale, result


def clear_sales_history() -> int:
    """Delete every sale record. Stock is left as it is."""
    sales = Collection(Sale, autocommit=False)
    removed = 0
    with unit_of_work():
        for sale in sales.list():
            sales.delete(sale.id)
            removed += 1
    current_app.logger.warning("Sales history cleared: %d sales removed", removed)
    return removed
