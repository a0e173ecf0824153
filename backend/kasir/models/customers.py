from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data for receivables and loyalty.

    points is a running balance mutated only by completed sales (earn) and
    redemptions (spend), plus the reversals of those when a sale is edited
    or cancelled. It is never negative.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.CheckConstraint("points >= 0", name="ck_customers_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "points": self.points,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class CustomerPointsHistory(db.Model):
    """
    Append-only ledger of point balance changes.

    TYPES:
    - EARNED: Points earned from a sale (positive)
    - REDEEMED: Points spent as a discount on a sale (negative)
    - ADJUSTMENT: Reversal of a sale's earlier effect on edit/cancel, or a
      manual correction (either sign)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "customer_points_history"
    __table_args__ = (
        db.Index("ix_points_history_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    points = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("points_history", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "points": self.points,
            "type": self.type,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
