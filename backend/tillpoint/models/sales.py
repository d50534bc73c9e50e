from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .inventory import money


class Sale(db.Model):
    """
    Committed sale (invoice/receipt) - the only durable transactional record.

    TOTALS AT COMMIT:
    - subtotal == sum(item.total)
    - total == subtotal - discount + tax
    discount holds the global (percentage) discount amount; negotiated
    per-line markdowns are already inside subtotal and are reported
    separately in item_discount for display.

    An edit overwrites items and totals in place; a delete removes the row
    after stock has been restored.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("receipt_no", name="uq_sales_receipt_no"),
        db.Index("ix_sales_cashier_created", "cashier_name", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable receipt number (e.g., "INV-482913")
    receipt_no = db.Column(db.String(64), nullable=False)

    subtotal = db.Column(db.Numeric(14, 2), nullable=False)
    discount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    item_discount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    global_discount_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(14, 2), nullable=False)

    amount_paid = db.Column(db.Numeric(14, 2), nullable=False)
    change_due = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    balance_due = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, default="Cash")  # Cash, Mobile Money, Bank, Credit

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)
    customer_type = db.Column(db.String(16), nullable=False, default="Retail")  # pricing mode tag

    cashier_name = db.Column(db.String(120), nullable=False)
    from_held_sale = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    edited_at = db.Column(db.DateTime(timezone=True), nullable=True)
    edited_by = db.Column(db.String(120), nullable=True)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receipt_no": self.receipt_no,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money(self.subtotal),
            "discount": money(self.discount),
            "item_discount": money(self.item_discount),
            "global_discount_percentage": money(self.global_discount_percentage),
            "tax": money(self.tax),
            "total": money(self.total),
            "amount_paid": money(self.amount_paid),
            "change_due": money(self.change_due),
            "balance_due": money(self.balance_due),
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_type": self.customer_type,
            "cashier_name": self.cashier_name,
            "from_held_sale": self.from_held_sale,
            "created_at": to_utc_z(self.created_at),
            "edited_at": to_utc_z(self.edited_at) if self.edited_at else None,
            "edited_by": self.edited_by,
        }


class SaleItem(db.Model):
    """
    Line snapshot frozen at commit time.

    product_id is a plain integer, not a live reference: the product may be
    edited or deleted later without touching the receipt.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    # Mode-derived price before negotiation
    original_price = db.Column(db.Numeric(14, 2), nullable=True)
    total = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "sku": self.sku,
            "quantity": self.quantity,
            "price": money(self.price),
            "original_price": money(self.original_price),
            "total": money(self.total),
        }
