from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


SUPPLIER_CATEGORIES = (
    "Office Supplies",
    "Technology",
    "Food & Beverage",
    "Marketing Materials",
    "Professional Services",
    "Equipment",
    "Raw Materials",
    "Packaging",
    "Transportation",
    "Utilities",
    "Other",
)


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(64), nullable=False, default="Other")

    # Free-form names of what this supplier sells (not product ids)
    products = db.Column(db.JSON, nullable=False, default=list)

    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "category": self.category,
            "products": list(self.products or []),
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "user_id": self.user_id,
        }


class Customer(db.Model):
    """
    Customer with loyalty balance.

    loyalty_points, total_purchases_cents and last_purchase_at are running
    aggregates maintained by customer_service.add_customer_purchase.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    total_purchases_cents = db.Column(db.Integer, nullable=False, default=0)

    # Percentage 0-100 applied to the cart subtotal at checkout
    discount_pct = db.Column(db.Float, nullable=False, default=0.0)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_purchase_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "loyalty_points": self.loyalty_points,
            "total_purchases_cents": self.total_purchases_cents,
            "discount_pct": self.discount_pct,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "last_purchase_at": to_utc_z(self.last_purchase_at),
        }


class CustomerPurchase(db.Model):
    __tablename__ = "customer_purchases"
    __table_args__ = (
        db.Index("ix_customer_purchases_customer_date", "customer_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    # Snapshot of [{product_id, name, quantity, price_cents}]
    products = db.Column(db.JSON, nullable=False, default=list)

    points_earned = db.Column(db.Integer, nullable=False, default=0)
    discount_applied_cents = db.Column(db.Integer, nullable=False, default=0)

    customer = db.relationship(
        "Customer",
        backref=db.backref("purchases", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "products": list(self.products or []),
            "points_earned": self.points_earned,
            "discount_applied_cents": self.discount_applied_cents,
        }
