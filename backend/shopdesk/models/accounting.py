from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


TRANSACTION_TYPES = ("income", "expense")
CURRENCIES = ("USD", "EGP", "AED")

# Categories used by system-generated entries
CATEGORY_SALES = "Sales"
CATEGORY_RETURNS = "Returns"
CATEGORY_PARTIAL_RETURNS = "Partial Returns"


class Transaction(db.Model):
    """Income/expense bookkeeping entry."""
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_date", "date"),
        db.Index("ix_transactions_type_category", "type", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(8), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="EGP")
    category = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Who recorded it; NULL for system-generated entries (checkout, returns)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=True)

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
            "user_id": self.user_id,
            "supplier_id": self.supplier_id,
            "sale_id": self.sale_id,
            "return_id": self.return_id,
        }
