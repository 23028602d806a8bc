# Overview: Full and partial returns against completed sales.

"""
Return invariants

- Returned quantity per product never exceeds the quantity sold on the
  original sale, summed across every earlier return.
- A full return takes back whatever is still unreturned and refunds the
  rest of the sale total (discount and tax included).
- A partial return refunds line value only (quantity x price at sale time).
- Stock, the Return document, the sale flags, the expense transaction and
  the audit entry commit together.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    CATEGORY_PARTIAL_RETURNS,
    CATEGORY_RETURNS,
    Return,
    ReturnLine,
    Sale,
    Transaction,
)
from shopdesk.time_utils import utcnow
from .audit_service import add_audit_log
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .stock_service import add_stock_movement


logger = logging.getLogger(__name__)

DEFAULT_FULL_REASON = "Full return from POS"
DEFAULT_PARTIAL_REASON = "Partial return from POS"


class ReturnError(Exception):
    """Raised for return operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _returned_quantities(sale_id: int) -> dict[int, int]:
    rows = (
        db.session.query(ReturnLine.product_id, func.coalesce(func.sum(ReturnLine.quantity), 0))
        .join(Return, Return.id == ReturnLine.return_id)
        .filter(Return.original_sale_id == sale_id)
        .group_by(ReturnLine.product_id)
        .all()
    )
    return {pid: int(qty) for pid, qty in rows}


def _refunded_cents(sale_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Return.total_cents), 0))
        .filter(Return.original_sale_id == sale_id)
        .scalar()
    )
    return int(total or 0)


def _sold_quantities(sale: Sale) -> dict[int, dict]:
    sold: dict[int, dict] = {}
    for line in sale.lines:
        entry = sold.setdefault(line.product_id, {"name": line.name, "quantity": 0, "price_cents": line.price_cents})
        entry["quantity"] += line.quantity
    return sold


def get_returnable_lines(sale_id: int) -> list[dict]:
    """Per product: sold, already returned and still returnable quantities."""
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise ReturnError("Sale not found")
    returned = _returned_quantities(sale.id)
    rows = []
    for product_id, entry in _sold_quantities(sale).items():
        done = returned.get(product_id, 0)
        rows.append({
            "product_id": product_id,
            "name": entry["name"],
            "price_cents": entry["price_cents"],
            "sold_quantity": entry["quantity"],
            "returned_quantity": done,
            "returnable_quantity": entry["quantity"] - done,
        })
    return rows


def _load_sale_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if sale is None:
        raise ReturnError("Sale not found")
    return sale


def _record_return(
    *,
    sale: Sale,
    return_type: str,
    lines: list[dict],
    total_cents: int,
    tax_cents: int,
    discount_cents: int,
    reason: str,
    user_id: int | None,
) -> Return:
    now = utcnow()
    doc = Return(
        original_sale_id=sale.id,
        original_invoice_number=sale.invoice_number,
        return_type=return_type,
        total_cents=total_cents,
        tax_cents=tax_cents,
        discount_cents=discount_cents,
        payment_type=sale.payment_type,
        reason=reason,
        customer_name=sale.customer_name,
        customer_phone=sale.customer_phone,
        user_id=user_id,
        return_date=now,
    )
    for line in lines:
        doc.lines.append(ReturnLine(**line))
    db.session.add(doc)
    db.session.flush()

    label = "Full" if return_type == "full" else "Partial"
    for line in doc.lines:
        add_stock_movement({
            "product_id": line.product_id,
            "type": "in",
            "quantity": line.quantity,
            "date": now,
            "note": f"{label} return of invoice {sale.invoice_number} - {sale.customer_name} - {line.name}",
            "reason": "return",
            "sale_id": sale.id,
            "return_id": doc.id,
        }, commit=False)

    sale.is_returned = True
    sale.return_id = doc.id
    sale.return_date = now

    description = f"{label} return of invoice {sale.invoice_number} - {sale.customer_name}"
    if reason:
        description += f" - reason: {reason}"
    db.session.add(Transaction(
        type="expense",
        amount_cents=total_cents,
        currency=current_app.config["DEFAULT_CURRENCY"],
        category=CATEGORY_RETURNS if return_type == "full" else CATEGORY_PARTIAL_RETURNS,
        description=description,
        date=now,
        sale_id=sale.id,
        return_id=doc.id,
    ))

    add_audit_log(
        action=f"{return_type}_return",
        user_id=user_id,
        entity="return",
        entity_id=doc.id,
        sale_id=sale.id,
        invoice_number=sale.invoice_number,
        details={
            "amount_cents": total_cents,
            "reason": reason,
            "products": [l.to_dict() for l in doc.lines],
        },
    )
    return doc


def process_full_return(sale_id: int, reason: str | None = None, user_id: int | None = None) -> Return:
    def _op():
        begin_immediate()
        sale = _load_sale_locked(sale_id)
        returned = _returned_quantities(sale.id)

        lines = []
        for product_id, entry in _sold_quantities(sale).items():
            remaining = entry["quantity"] - returned.get(product_id, 0)
            if remaining > 0:
                lines.append({
                    "product_id": product_id,
                    "name": entry["name"],
                    "quantity": remaining,
                    "price_cents": entry["price_cents"],
                    "original_quantity": entry["quantity"],
                })
        if not lines:
            raise ReturnError("Sale has already been fully returned")

        already_refunded = _refunded_cents(sale.id)
        doc = _record_return(
            sale=sale,
            return_type="full",
            lines=lines,
            total_cents=max(sale.total_cents - already_refunded, 0),
            tax_cents=sale.tax_cents if not returned else 0,
            discount_cents=sale.discount_cents if not returned else 0,
            reason=reason or DEFAULT_FULL_REASON,
            user_id=user_id,
        )
        db.session.commit()
        logger.info("Full return %s recorded for invoice %s", doc.id, sale.invoice_number)
        return doc

    return run_with_retry(_op)


def process_partial_return(
    sale_id: int,
    quantities: dict[int, int],
    reason: str | None = None,
    user_id: int | None = None,
) -> Return:
    """quantities maps product_id -> quantity to take back."""
    if not quantities:
        raise ReturnError("Select at least one product to return")

    requested: dict[int, int] = {}
    for raw_pid, raw_qty in quantities.items():
        try:
            product_id = int(raw_pid)
            qty = int(raw_qty)
        except (TypeError, ValueError):
            raise ReturnError("Invalid product or quantity")
        requested[product_id] = requested.get(product_id, 0) + qty

    def _op():
        begin_immediate()
        sale = _load_sale_locked(sale_id)
        sold = _sold_quantities(sale)
        returned = _returned_quantities(sale.id)

        lines = []
        problems = []
        for product_id, qty in requested.items():
            entry = sold.get(product_id)
            if entry is None:
                problems.append({"product_id": product_id, "error": "not on this sale"})
                continue
            remaining = entry["quantity"] - returned.get(product_id, 0)
            if qty <= 0 or qty > remaining:
                problems.append({
                    "product_id": product_id,
                    "requested_quantity": qty,
                    "returnable_quantity": remaining,
                })
                continue
            lines.append({
                "product_id": product_id,
                "name": entry["name"],
                "quantity": qty,
                "price_cents": entry["price_cents"],
                "original_quantity": entry["quantity"],
            })

        if problems:
            raise ReturnError("Invalid return quantities", details={"items": problems})

        doc = _record_return(
            sale=sale,
            return_type="partial",
            lines=lines,
            total_cents=sum(l["quantity"] * l["price_cents"] for l in lines),
            tax_cents=0,
            discount_cents=0,
            reason=reason or DEFAULT_PARTIAL_REASON,
            user_id=user_id,
        )
        db.session.commit()
        logger.info("Partial return %s recorded for invoice %s", doc.id, sale.invoice_number)
        return doc

    return run_with_retry(_op)


def get_return(return_id: int) -> Return | None:
    return db.session.get(Return, return_id)


def list_returns(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    return_type: str | None = None,
) -> list[Return]:
    q = db.session.query(Return)
    if start is not None:
        q = q.filter(Return.return_date >= start)
    if end is not None:
        q = q.filter(Return.return_date < end)
    if return_type:
        q = q.filter(Return.return_type == return_type)
    return q.order_by(Return.return_date.desc(), Return.id.desc()).all()


def returns_report(start: datetime | None = None, end: datetime | None = None, top: int = 5) -> dict:
    returns = list_returns(start=start, end=end)

    by_type: dict[str, dict] = {}
    products: dict[int, dict] = {}
    total_items = 0
    for doc in returns:
        bucket = by_type.setdefault(doc.return_type, {"count": 0, "total_cents": 0})
        bucket["count"] += 1
        bucket["total_cents"] += doc.total_cents
        for line in doc.lines:
            total_items += line.quantity
            p = products.setdefault(line.product_id, {"product_id": line.product_id, "name": line.name, "quantity": 0, "total_cents": 0})
            p["quantity"] += line.quantity
            p["total_cents"] += line.quantity * line.price_cents

    top_products = sorted(products.values(), key=lambda p: (-p["quantity"], p["name"]))[:top]
    return {
        "total_returns": len(returns),
        "total_amount_cents": sum(r.total_cents for r in returns),
        "total_items": total_items,
        "by_type": by_type,
        "top_products": top_products,
    }
