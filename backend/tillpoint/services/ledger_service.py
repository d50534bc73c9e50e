# Overview: Append-only stock log; every manual stock movement records one entry here.

from __future__ import annotations

from ..models import Product, StockLogEntry
from .storage import Collection
"""
Stock Log Invariants (authoritative)

- Append-only audit trail of stock quantity changes.
- No domain/business logic in the log itself.
- Entries are written in the same unit of work as the stock change they record.
- Ordinary sale commits do NOT write entries unless LOG_SALE_STOCK_MOVEMENTS is on;
  reports may assume sales are not duplicated in the stock log.
"""

REASON_RESTOCK = "Restock"
REASON_SALE = "Sale"
REASON_SALE_EDIT_REVERSAL = "Sale Edit Reversal"
REASON_SALE_EDIT = "Sale Edit Correction"
REASON_SALE_DELETED = "Sale Deleted"


def append_stock_log(
    *,
    product: Product,
    previous_stock: int,
    new_stock: int,
    reason: str,
    user: str,
    note: str | None = None,
    autocommit: bool = False,
) -> StockLogEntry:
    """
    Append one stock log entry.

    - No updates/deletes of existing entries.
    - change_amount is always new_stock - previous_stock.
    """
    entry = StockLogEntry(
        product_id=product.id,
        product_name=product.name,
        previous_stock=previous_stock,
        new_stock=new_stock,
        change_amount=new_stock - previous_stock,
        reason=reason,
        note=note,
        user=user,
    )
    return Collection(StockLogEntry, autocommit=autocommit).add(entry)


def list_stock_log(product_id: int | None = None) -> list[StockLogEntry]:
    """Stock log newest first, optionally for one product."""
    entries = Collection(StockLogEntry).list()
    if product_id is not None:
        entries = [e for e in entries if e.product_id == product_id]
    return sorted(entries, key=lambda e: (e.created_at, e.id), reverse=True)
