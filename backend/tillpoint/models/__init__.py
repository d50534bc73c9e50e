from .inventory import Product, StockLogEntry, Purchase, PurchaseItem
from .sales import Sale, SaleItem

__all__ = [
    'Product', 'StockLogEntry', 'Purchase', 'PurchaseItem',
    'Sale', 'SaleItem',
]
