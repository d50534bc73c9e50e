from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def money(value: Decimal | None) -> str | None:
    """Serialize an amount for JSON without float rounding."""
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))


class Product(db.Model):
    """
    Catalog entry.

    PRICING FIELDS:
    - selling_price: retail price
    - cost_price: also the wholesale price (wholesale is cost pass-through)
    - middle_man_price: optional; zero or NULL falls back to selling_price
    - min_selling_price: optional retail floor; NULL falls back to selling_price

    STOCK:
    stock_quantity is a mutable counter. It is only written by checkout,
    sale reconciliation (edit/delete), manual adjustment and purchase
    receiving. Catalog management never touches it through the POS core.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, default="General")
    brand = db.Column(db.String(120), nullable=True)

    cost_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    middle_man_price = db.Column(db.Numeric(14, 2), nullable=True)
    min_selling_price = db.Column(db.Numeric(14, 2), nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "cost_price": money(self.cost_price),
            "selling_price": money(self.selling_price),
            "middle_man_price": money(self.middle_man_price),
            "min_selling_price": money(self.min_selling_price),
            "stock_quantity": self.stock_quantity,
            "reorder_level": self.reorder_level,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLogEntry(db.Model):
    """
    Append-only audit record of a stock quantity change.

    IMMUTABLE: rows are never updated or deleted by the POS core.
    product_id is not a foreign key; entries outlive the product.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.Index("ix_stock_logs_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)
    change_amount = db.Column(db.Integer, nullable=False)

    # e.g. "Restock", "Damage", "Sale", "Sale Edit Correction"
    reason = db.Column(db.String(64), nullable=False, index=True)
    note = db.Column(db.String(255), nullable=True)
    user = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "change_amount": self.change_amount,
            "reason": self.reason,
            "note": self.note,
            "user": self.user,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """Supplier purchase received into stock."""
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_name = db.Column(db.String(255), nullable=False)
    invoice_no = db.Column(db.String(64), nullable=True)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="Received")
    received_by = db.Column(db.String(120), nullable=False)
    note = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_name": self.supplier_name,
            "invoice_no": self.invoice_no,
            "total_amount": money(self.total_amount),
            "status": self.status,
            "received_by": self.received_by,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(14, 2), nullable=False)
    total_cost = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_cost": money(self.unit_cost),
            "total_cost": money(self.total_cost),
        }
