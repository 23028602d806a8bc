# Overview: Stock ledger; on-hand quantity is always derived from movements.

"""
Stock ledger invariants

- stock_movements is append-only from the business point of view; the only
  removal path is delete_stock_movement (admin correction).
- Stock on hand is never stored. It is SUM(in) - SUM(out) over every
  movement of the product, recomputed on every call.
- The ledger itself does not reject non-positive quantities or overselling.
  Callers (HTTP route, checkout) validate before appending.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func

from ..extensions import db
from ..models import Product, StockMovement
from shopdesk.time_utils import utcnow, parse_iso_datetime


class StockError(Exception):
    """Raised for stock ledger errors."""
    pass


def _signed_quantity():
    return case(
        (StockMovement.type == "in", StockMovement.quantity),
        else_=-StockMovement.quantity,
    )


def _normalize_date(value) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        return value
    dt = parse_iso_datetime(str(value))
    if dt is None:
        raise StockError("invalid date")
    return dt


def add_stock_movement(entry: dict, *, commit: bool = True) -> int:
    """
    Append a movement and return its id.

    entry keys: product_id, type ('in'|'out'), quantity, and optional
    date, note, reason, sale_id, return_id.
    """
    movement_type = entry.get("type")
    if movement_type not in ("in", "out"):
        raise StockError("type must be 'in' or 'out'")

    product_id = entry.get("product_id")
    if db.session.get(Product, product_id) is None:
        raise StockError("Product not found")

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=int(entry.get("quantity") or 0),
        date=_normalize_date(entry.get("date")),
        note=entry.get("note"),
        reason=entry.get("reason"),
        sale_id=entry.get("sale_id"),
        return_id=entry.get("return_id"),
    )
    db.session.add(movement)
    db.session.flush()

    if commit:
        db.session.commit()
    return movement.id


def get_stock_movements(product_id: int | None = None) -> list[StockMovement]:
    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    return q.order_by(StockMovement.date.desc(), StockMovement.id.desc()).all()


def delete_stock_movement(movement_id: int) -> None:
    movement = db.session.get(StockMovement, movement_id)
    if movement is None:
        raise StockError("Stock movement not found")
    db.session.delete(movement)
    db.session.commit()


def get_product_stock(product_id: int) -> int:
    """Fold every movement of the product into a signed sum."""
    total = db.session.query(
        func.coalesce(func.sum(_signed_quantity()), 0)
    ).filter(
        StockMovement.product_id == product_id,
    ).scalar()
    return int(total or 0)


def get_stock_levels() -> list[dict]:
    """Derived stock for every product, flagged when below min_sale_quantity."""
    totals = dict(
        db.session.query(
            StockMovement.product_id,
            func.coalesce(func.sum(_signed_quantity()), 0),
        ).group_by(StockMovement.product_id).all()
    )

    rows = []
    for product in db.session.query(Product).order_by(Product.name).all():
        stock = int(totals.get(product.id, 0))
        rows.append({
            "product_id": product.id,
            "name": product.name,
            "barcode": product.barcode,
            "stock": stock,
            "min_sale_quantity": product.min_sale_quantity,
            "low_stock": stock < product.min_sale_quantity,
            "stock_value_cents": max(stock, 0) * product.purchase_price_cents,
        })
    return rows
