from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class Sale(db.Model):
    """
    Committed sale header.

    AMOUNTS (integer currency units):
    - total: amount due after point redemption
    - paid: amount recorded as paid (a debt sale records the total here)
    - change: paid - total, forced to 0 on debt sales

    EDITS: identity is preserved; total/paid/points and the line items are
    replaced, never appended.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    STATUS_COMPLETED = "COMPLETED"
    STATUS_CANCELLED = "CANCELLED"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_COMPLETED, index=True)

    total = db.Column(db.Integer, nullable=False, default=0)
    paid = db.Column(db.Integer, nullable=False, default=0)
    change = db.Column(db.Integer, nullable=False, default=0)

    points_earned = db.Column(db.Integer, nullable=False, default=0)
    points_redeemed = db.Column(db.Integer, nullable=False, default=0)

    # Business time: the transaction date collected at checkout
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    payment_method = db.relationship("PaymentMethod")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "payment_method_id": self.payment_method_id,
            "status": self.status,
            "total": self.total,
            "paid": self.paid,
            "change": self.change,
            "points_earned": self.points_earned,
            "points_redeemed": self.points_redeemed,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "version_id": self.version_id,
        }


class SaleLine(db.Model):
    """
    Billable line of a sale.

    A cart line may produce two rows for the same product: the package-priced
    part and the unit-priced remainder. The full set is deleted and
    reinserted whenever the sale is edited.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    # Effective unit price; fractional for package lines (package_price / package_qty)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    subtotal = db.Column(db.Integer, nullable=False)
    pricing = db.Column(db.String(16), nullable=False, default="unit")

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "qty": self.qty,
            "price": str(self.price) if self.price is not None else None,
            "subtotal": self.subtotal,
            "pricing": self.pricing,
        }


class Receivable(db.Model):
    """
    Outstanding amount a customer owes for one sale (0 or 1 per sale).

    INVARIANT: exists iff the sale is under-paid and has a customer;
    amount equals the outstanding balance while it exists. Replaced in full
    when the sale is edited, removed when it is cancelled.
    """
    __tablename__ = "receivables"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_receivables_sale"),
        db.Index("ix_receivables_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    STATUS_PENDING = "pending"
    STATUS_PAID = "paid"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("receivable", uselist=False, lazy=True))
    customer = db.relationship("Customer", backref=db.backref("receivables", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "customer_id": self.customer_id,
            "amount": self.amount,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
