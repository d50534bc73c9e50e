"""
Checkout: commit a cart as a Sale and take its lines out of stock.

Steps, in order:
1. amount paid must cover the total
2. freeze every cart line into a SaleItem snapshot
3. receipt number = prefix + "-" + last six digits of the clock in millis
4. write the Sale
5. decrement stock per line, in cart order
6. drop the held sale the cart was resumed from, if any
7. clear the cart
8. return the persisted Sale for receipt rendering

With ATOMIC_STOCK_WRITES on, steps 4-5 run in one DB transaction and a
failure leaves nothing behind. With it off, every write commits on its own
(the record-store behavior the POS was built against): a failure during
step 5 leaves the Sale recorded with stock only partly decremented. The
raised PersistenceFailure and the error log name the failed step and the
products already decremented so the difference can be fixed by a manual
stock adjustment.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import EmptyCart, EntityNotFound, InsufficientPayment, PersistenceFailure
from ..models import Product, Sale, SaleItem
from ..time_utils import now_millis, utcnow
from .cart_service import Cart, CheckoutDraft
from .hold_service import HoldStore
from .inventory_service import apply_stock_delta
from .ledger_service import REASON_SALE
from .pricing_service import ZERO, quantize
from .settings_service import PosSettings, current_settings
from .storage import Collection, unit_of_work


def generate_receipt_no(prefix: str, taken: set[str] | None = None, millis: int | None = None) -> str:
    """
    prefix + "-" + last six digits of the millisecond clock.

    The suffix wraps every 1000 seconds, so a number already in use is
    skipped by stepping the clock value forward.
    """
    taken = taken or set()
    millis = now_millis() if millis is None else millis
    while True:
        receipt_no = f"{prefix}-{str(millis)[-6:]}"
        if receipt_no not in taken:
            return receipt_no
        millis += 1


def freeze_items(cart: Cart) -> list[SaleItem]:
    return [
        SaleItem(
            position=position,
            product_id=line.product_id,
            name=line.product.name,
            sku=line.product.sku,
            quantity=line.quantity,
            price=quantize(line.price),
            original_price=quantize(line.preferred_price),
            total=quantize(line.total),
        )
        for position, line in enumerate(cart.lines)
    ]


def commit_sale(
    cart: Cart,
    draft: CheckoutDraft,
    cashier: str,
    *,
    held_sale_id: str | None = None,
    hold_store: HoldStore | None = None,
    settings: PosSettings | None = None,
) -> Sale:
    settings = settings or current_settings()
    if cart.is_empty:
        raise EmptyCart("Cart is empty")

    totals = cart.totals(
        draft.global_discount_percent,
        tax_enabled=settings.tax_enabled,
        tax_percentage=settings.tax_percentage,
    )
    amount_paid = Decimal(draft.amount_paid)
    if amount_paid < totals.total:
        raise InsufficientPayment(
            "Amount paid is less than total",
            details={"total": str(totals.total), "amount_paid": str(amount_paid)},
        )

    atomic = settings.atomic_stock_writes
    sales = Collection(Sale, autocommit=not atomic)
    products = Collection(Product, autocommit=not atomic, lock=settings.stock_row_locking)

    taken = {s.receipt_no for s in sales.list()}
    receipt_no = generate_receipt_no(settings.invoice_prefix, taken)
    sale = Sale(
        receipt_no=receipt_no,
        items=freeze_items(cart),
        subtotal=totals.subtotal,
        discount=totals.global_discount,
        item_discount=totals.item_discount,
        global_discount_percentage=totals.global_discount_percent,
        tax=totals.tax,
        total=totals.total,
        amount_paid=quantize(amount_paid),
        change_due=quantize(amount_paid - totals.total),
        balance_due=ZERO,
        payment_method=draft.payment_method,
        customer_name=draft.customer_name or None,
        customer_phone=draft.customer_phone or None,
        customer_type=cart.mode.value,
        cashier_name=cashier,
        from_held_sale=held_sale_id is not None,
        created_at=utcnow(),
    )

    # (product_id, quantity) pairs; the cart is not touched until success
    movements = [(line.product_id, line.quantity) for line in cart.lines]
    applied: list[int] = []
    sale_id = None
    with unit_of_work(atomic=atomic):
        try:
            sales.add(sale)
        except PersistenceFailure as exc:
            exc.details.update({"step": "sale_write", "receipt_no": receipt_no})
            current_app.logger.error("Checkout failed writing sale %s: %s", receipt_no, exc)
            raise
        sale_id = sale.id

        for product_id, quantity in movements:
            try:
                product = apply_stock_delta(
                    products, product_id, -quantity,
                    user=cashier,
                    reason=REASON_SALE,
                    note=f"Sale {receipt_no}",
                    log=settings.log_sale_stock_movements,
                )
            except PersistenceFailure as exc:
                exc.details.update({
                    "step": "stock_write",
                    "receipt_no": receipt_no,
                    "sale_id": sale_id,
                    "sale_persisted": not atomic,
                    "failed_product_id": product_id,
                    "applied_product_ids": list(applied),
                })
                current_app.logger.error(
                    "Checkout %s failed decrementing stock for product %s "
                    "(sale persisted=%s, already decremented=%s)",
                    receipt_no, product_id, not atomic, applied,
                )
                raise
            if product is None:
                current_app.logger.warning(
                    "Checkout %s: product %s no longer exists; stock not decremented",
                    receipt_no, product_id,
                )
                continue
            applied.append(product_id)

    if held_sale_id is not None:
        store = hold_store or HoldStore.for_app()
        try:
            store.discard(held_sale_id)
        except EntityNotFound:
            current_app.logger.warning("Held sale %s already gone after checkout %s", held_sale_id, sale.receipt_no)
        except PersistenceFailure:
            # The sale is committed; a stale hold must not keep the cart alive
            current_app.logger.error(
                "Held sale %s could not be discarded after checkout %s; remove it manually",
                held_sale_id, sale.receipt_no,
            )

    cart.clear()
    current_app.logger.info(
        "Sale %s committed by %s: total=%s lines=%d",
        sale.receipt_no, cashier, sale.total, len(movements),
    )
    return sale
