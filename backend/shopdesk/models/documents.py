from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


class Return(db.Model):
    """
    Return against a single original sale.

    A sale may accumulate several partial returns; Sale.return_id always
    points at the latest one.
    """
    __tablename__ = "returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    original_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    original_invoice_number = db.Column(db.String(64), nullable=True)

    # full | partial
    return_type = db.Column(db.String(8), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_type = db.Column(db.String(8), nullable=True)

    reason = db.Column(db.String(255), nullable=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    return_date = db.Column(db.DateTime(timezone=True), nullable=False)

    lines = db.relationship(
        "ReturnLine",
        backref="return_doc",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ReturnLine.id",
    )
    original_sale = db.relationship("Sale", foreign_keys=[original_sale_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original_sale_id": self.original_sale_id,
            "original_invoice_number": self.original_invoice_number,
            "return_type": self.return_type,
            "total_cents": self.total_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "payment_type": self.payment_type,
            "reason": self.reason,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "user_id": self.user_id,
            "return_date": to_utc_z(self.return_date),
            "lines": [line.to_dict() for line in self.lines],
        }


class ReturnLine(db.Model):
    __tablename__ = "return_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    original_quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "original_quantity": self.original_quantity,
        }


class Quotation(db.Model):
    __tablename__ = "quotations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company = db.Column(db.String(255), nullable=False)
    tax_rate_pct = db.Column(db.Float, nullable=False, default=0.0)
    payment_terms = db.Column(db.String(255), nullable=True)
    delivery_date = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "QuotationLine",
        backref="quotation",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="QuotationLine.id",
    )

    @property
    def subtotal_cents(self) -> int:
        return sum(line.quantity * line.price_cents for line in self.lines)

    @property
    def tax_cents(self) -> int:
        return round(self.subtotal_cents * (self.tax_rate_pct or 0) / 100)

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company": self.company,
            "tax_rate_pct": self.tax_rate_pct,
            "payment_terms": self.payment_terms,
            "delivery_date": self.delivery_date,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


class QuotationLine(db.Model):
    __tablename__ = "quotation_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
        }
