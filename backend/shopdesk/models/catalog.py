from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


product_suppliers = db.Table(
    "product_suppliers",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("supplier_id", db.Integer, db.ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True),
)


class Product(db.Model):
    """
    Catalog entry.

    There is deliberately no quantity column: stock is derived from
    stock_movements (see services/stock_service.py).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True, index=True)

    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)
    min_sale_quantity = db.Column(db.Integer, nullable=False, default=1)

    category_name = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    suppliers = db.relationship(
        "Supplier",
        secondary=product_suppliers,
        lazy="selectin",
        backref=db.backref("supplied_products", lazy=True),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} barcode={self.barcode!r}>"

    @property
    def supplier_ids(self) -> list[int]:
        return sorted(s.id for s in self.suppliers)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "min_sale_quantity": self.min_sale_quantity,
            "category_name": self.category_name,
            "supplier_ids": self.supplier_ids,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
