from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


MOVEMENT_TYPES = ("in", "out")


class StockMovement(db.Model):
    """
    Append-only inventory ledger row.

    quantity is always stored as entered; the sign comes from `type`
    ('in' adds, 'out' subtracts) when the ledger is folded.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    note = db.Column(db.String(255), nullable=True)
    # sale, purchase, return, adjustment, ...
    reason = db.Column(db.String(64), nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def signed_quantity(self) -> int:
        return self.quantity if self.type == "in" else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "date": to_utc_z(self.date),
            "note": self.note,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "return_id": self.return_id,
        }
