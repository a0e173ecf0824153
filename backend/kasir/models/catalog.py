from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    PRICING:
    - price is the single-unit selling price.
    - package_price/package_qty describe a bulk unit: package_qty units sell
      for package_price. package_price does NOT have to equal
      package_qty * price (bulk discount).

    STOCK:
    stock is a running balance. It is only mutated by the stock reconciler,
    inside the same unit of work as the sale rows that justify the change,
    and is never committed negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_name", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Scannable/printed code (optional; barcode scanning itself lives in the UI)
    code = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    price = db.Column(db.Integer, nullable=False, default=0)
    package_price = db.Column(db.Integer, nullable=True)
    package_qty = db.Column(db.Integer, nullable=True)
    purchase_price = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "price": self.price,
            "package_price": self.package_price,
            "package_qty": self.package_qty,
            "purchase_price": self.purchase_price,
            "stock": self.stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PaymentMethod(db.Model):
    """
    Tender option chosen at checkout.

    DEBT CONVENTION: a method whose name contains "hutang" (case-insensitive)
    defers payment and produces a receivable instead of requiring full payment.
    """
    __tablename__ = "payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)

    def to_dict(self) -> dict:
        from ..services.payment_method_service import is_debt_method

        return {
            "id": self.id,
            "name": self.name,
            "is_debt": is_debt_method(self),
        }


class StockMovement(db.Model):
    """
    Append-only audit trail of applied stock deltas.

    One row per delta applied to Product.stock. Written in the same DB
    transaction as the stock change itself, so the sum of a product's
    movements for a sale always matches what that sale currently holds.

    MOVEMENT TYPES:
    - SALE: stock consumed by a committed sale version (negative)
    - SALE_REVERSAL: stock restored when a sale version is replaced or
      cancelled (positive)
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)

    note = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sale_id": self.sale_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "stock_after": self.stock_after,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
