from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


PAYMENT_TYPES = ("cash", "card")


class Sale(db.Model):
    """
    Completed POS sale.

    Amounts are snapshots taken at checkout; they are never recomputed
    from current product prices.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shift_id", "shift_id"),
        db.Index("ix_sales_customer_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # INV-YYYYMMDD-SSSS-CCCC (or INV-FALLBACK-... when generation failed)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    customer_name = db.Column(db.String(255), nullable=False, default="Walk-in customer")
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_pct = db.Column(db.Float, nullable=False, default=0.0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_type = db.Column(db.String(8), nullable=False, default="cash")

    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False)

    is_returned = db.Column(db.Boolean, nullable=False, default=False)
    return_id = db.Column(db.Integer, nullable=True)
    return_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice={self.invoice_number!r} total_cents={self.total_cents}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_rate_pct": self.tax_rate_pct,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_type": self.payment_type,
            "shift_id": self.shift_id,
            "user_id": self.user_id,
            "date": to_utc_z(self.date),
            "is_returned": self.is_returned,
            "return_id": self.return_id,
            "return_date": to_utc_z(self.return_date),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    # Name/price captured at sale time
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "line_total_cents": self.line_total_cents,
            "note": self.note,
        }


class Payment(db.Model):
    """One payment per sale; split tender is not supported."""
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(8), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "tax_cents": self.tax_cents,
            "type": self.type,
            "user_id": self.user_id,
            "date": to_utc_z(self.date),
        }


class Shift(db.Model):
    """
    Cashier operating period.

    Running totals are bumped on every checkout and recomputed from
    sales/payments when the shift is closed.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_user_open", "user_id", "is_open"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_open = db.Column(db.Boolean, nullable=False, default=True)

    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    total_card_cents = db.Column(db.Integer, nullable=False, default=0)
    sales_count = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "is_open": self.is_open,
            "total_sales_cents": self.total_sales_cents,
            "total_tax_cents": self.total_tax_cents,
            "total_cash_cents": self.total_cash_cents,
            "total_card_cents": self.total_card_cents,
            "sales_count": self.sales_count,
        }
