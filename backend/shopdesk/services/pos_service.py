# Overview: POS shifts, checkout and sale lookups.

"""
Checkout invariants

- A sale can only be rung up by a user with an open shift.
- Every step of a checkout (stock check, ledger rows, sale, payment,
  income transaction, shift totals, loyalty, audit) commits together or
  not at all.
- Product rows are locked before stock is read so two checkouts cannot
  both sell the last unit.
- Money is integer cents. Discount and tax are rounded half away from
  zero once, at the sale level.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import String, cast

from ..extensions import db
from ..models import (
    CATEGORY_SALES,
    PAYMENT_TYPES,
    Customer,
    Payment,
    Product,
    Sale,
    SaleLine,
    Shift,
    Transaction,
)
from shopdesk.time_utils import utcnow
from .audit_service import add_audit_log
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .customer_service import add_customer, add_customer_purchase, calculate_loyalty_points
from .invoice_service import generate_invoice_number
from .stock_service import add_stock_movement, get_product_stock


logger = logging.getLogger(__name__)

WALK_IN_CUSTOMER = "Walk-in customer"
SEARCH_LIMIT = 20


class ShiftError(Exception):
    """Raised for shift operation errors."""
    pass


class ShiftForbiddenError(ShiftError):
    pass


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def round_cents(value) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(subtotal_cents: int, discount_pct: float, tax_rate_pct: float) -> dict:
    discount = round_cents(Decimal(subtotal_cents) * Decimal(str(discount_pct or 0)) / 100)
    taxable = subtotal_cents - discount
    tax = round_cents(Decimal(taxable) * Decimal(str(tax_rate_pct or 0)) / 100)
    return {
        "subtotal_cents": subtotal_cents,
        "discount_cents": discount,
        "tax_cents": tax,
        "total_cents": taxable + tax,
    }


# ---------------------------------------------------------------------------
# Shifts
# ---------------------------------------------------------------------------

def get_open_shift(user_id: int) -> Shift | None:
    return (
        db.session.query(Shift)
        .filter(Shift.user_id == user_id, Shift.is_open.is_(True))
        .order_by(Shift.opened_at.desc())
        .first()
    )


def open_shift(user_id: int) -> Shift:
    def _op():
        begin_immediate()
        if get_open_shift(user_id) is not None:
            raise ShiftError("User already has an open shift")

        shift = Shift(
            user_id=user_id,
            opened_at=utcnow(),
            is_open=True,
            total_sales_cents=0,
            total_tax_cents=0,
            total_cash_cents=0,
            total_card_cents=0,
            sales_count=0,
        )
        db.session.add(shift)
        db.session.flush()
        add_audit_log(action="shift.opened", user_id=user_id, entity="shift", entity_id=shift.id)
        db.session.commit()
        return shift

    return run_with_retry(_op)


def get_shift_summary(shift_id: int) -> dict:
    """
    Totals derived from the shift's sales and their payments, in cents:
    total_sales, total_tax, total_count, total_cash, total_card.
    """
    sales = db.session.query(Sale).filter(Sale.shift_id == shift_id).all()
    sale_ids = [s.id for s in sales]

    cash = card = 0
    if sale_ids:
        for payment in db.session.query(Payment).filter(Payment.sale_id.in_(sale_ids)).all():
            if payment.type == "cash":
                cash += payment.amount_cents
            elif payment.type == "card":
                card += payment.amount_cents

    return {
        "total_sales": sum(s.total_cents for s in sales),
        "total_tax": sum(s.tax_cents for s in sales),
        "total_count": len(sales),
        "total_cash": cash,
        "total_card": card,
    }


def close_shift(shift_id: int, user_id: int | None = None, *, owner_only: bool = False) -> Shift:
    """With owner_only, user_id must be the cashier who opened the shift."""
    def _op():
        begin_immediate()
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if shift is None:
            raise ShiftError("Shift not found")
        if owner_only and shift.user_id != user_id:
            raise ShiftForbiddenError("Shift belongs to another user")
        if not shift.is_open:
            raise ShiftError("Shift is already closed")

        summary = get_shift_summary(shift.id)
        shift.total_sales_cents = summary["total_sales"]
        shift.total_tax_cents = summary["total_tax"]
        shift.total_cash_cents = summary["total_cash"]
        shift.total_card_cents = summary["total_card"]
        shift.sales_count = summary["total_count"]
        shift.closed_at = utcnow()
        shift.is_open = False

        add_audit_log(
            action="shift.closed",
            user_id=user_id or shift.user_id,
            entity="shift",
            entity_id=shift.id,
            details=summary,
        )
        db.session.commit()
        return shift

    return run_with_retry(_op)


def list_shifts(user_id: int | None = None) -> list[Shift]:
    q = db.session.query(Shift)
    if user_id is not None:
        q = q.filter(Shift.user_id == user_id)
    return q.order_by(Shift.opened_at.desc(), Shift.id.desc()).all()


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

def _aggregate_cart(items: list[dict]) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in items:
        try:
            product_id = int(item["product_id"])
            quantity = int(item["quantity"])
        except (KeyError, TypeError, ValueError):
            raise SaleError("Each cart line needs product_id and quantity")
        if quantity <= 0:
            raise SaleError("Quantity must be positive", details={"product_id": product_id})
        totals[product_id] = totals.get(product_id, 0) + quantity
    return totals


def _lock_products(product_ids: list[int]) -> dict[int, Product]:
    products = (
        lock_for_update(db.session.query(Product).filter(Product.id.in_(product_ids)))
        .order_by(Product.id)
        .all()
    )
    found = {p.id: p for p in products}
    missing = [pid for pid in product_ids if pid not in found]
    if missing:
        raise SaleError("Product not found", details={"product_ids": missing})
    return found


def _validate_stock(quantities: dict[int, int], products: dict[int, Product]) -> None:
    insufficient = []
    for product_id, qty in quantities.items():
        on_hand = get_product_stock(product_id)
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "name": products[product_id].name,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })
    if insufficient:
        raise SaleError("Insufficient stock", details={"items": insufficient})


def _resolve_customer(customer: dict | None) -> Customer | None:
    if not customer:
        return None

    customer_id = customer.get("id")
    if customer_id:
        try:
            customer_id = int(customer_id)
        except (TypeError, ValueError):
            raise SaleError("Invalid customer id")
        found = db.session.get(Customer, customer_id)
        if found is None:
            raise SaleError("Customer not found")
        return found

    name = (customer.get("name") or "").strip()
    phone = (customer.get("phone") or "").strip()
    if not (name and phone):
        return None

    existing = db.session.query(Customer).filter(Customer.phone == phone).first()
    if existing is not None:
        return existing
    return add_customer({"name": name, "phone": phone}, commit=False)


def add_payment(*, sale: Sale, payment_type: str, user_id: int | None = None, commit: bool = False) -> Payment:
    payment = Payment(
        sale_id=sale.id,
        amount_cents=sale.total_cents,
        tax_cents=sale.tax_cents,
        type=payment_type,
        user_id=user_id,
        date=sale.date,
    )
    db.session.add(payment)
    db.session.flush()
    if commit:
        db.session.commit()
    return payment


def checkout(
    *,
    user_id: int,
    items: list[dict],
    customer: dict | None = None,
    tax_rate_pct: float | None = None,
    payment_type: str = "cash",
) -> Sale:
    """
    Ring up a cart and return the committed Sale.

    items: [{"product_id": int, "quantity": int}, ...]
    customer: {"id": int} for an existing customer, or {"name", "phone"};
    a name + phone with an unknown phone creates the customer.
    """
    if payment_type not in PAYMENT_TYPES:
        raise SaleError(f"payment_type must be one of {', '.join(PAYMENT_TYPES)}")
    if tax_rate_pct is None:
        tax_rate_pct = current_app.config["DEFAULT_TAX_RATE_PCT"]
    if not 0 <= tax_rate_pct <= 100:
        raise SaleError("tax_rate_pct must be between 0 and 100")

    def _op():
        begin_immediate()

        shift = get_open_shift(user_id)
        if shift is None:
            raise SaleError("No open shift; open a shift before selling")

        if not items:
            raise SaleError("Cart is empty")
        quantities = _aggregate_cart(items)

        products = _lock_products(sorted(quantities))
        _validate_stock(quantities, products)

        cust = _resolve_customer(customer)
        now = utcnow()

        subtotal = sum(products[pid].sale_price_cents * qty for pid, qty in quantities.items())
        totals = compute_totals(subtotal, cust.discount_pct if cust else 0, tax_rate_pct)

        sale = Sale(
            invoice_number=generate_invoice_number(now),
            customer_name=cust.name if cust else ((customer or {}).get("name") or WALK_IN_CUSTOMER),
            customer_phone=cust.phone if cust else (customer or {}).get("phone"),
            customer_id=cust.id if cust else None,
            tax_rate_pct=float(tax_rate_pct),
            payment_type=payment_type,
            shift_id=shift.id,
            user_id=user_id,
            date=now,
            is_returned=False,
            **totals,
        )
        for pid, qty in quantities.items():
            product = products[pid]
            sale.lines.append(SaleLine(
                product_id=pid,
                name=product.name,
                quantity=qty,
                price_cents=product.sale_price_cents,
            ))
        db.session.add(sale)
        db.session.flush()

        for line in sale.lines:
            add_stock_movement({
                "product_id": line.product_id,
                "type": "out",
                "quantity": line.quantity,
                "date": now,
                "note": f"Sale {sale.invoice_number}",
                "reason": "sale",
                "sale_id": sale.id,
            }, commit=False)

        add_payment(sale=sale, payment_type=payment_type, user_id=user_id)

        db.session.add(Transaction(
            type="income",
            amount_cents=sale.total_cents,
            currency=current_app.config["DEFAULT_CURRENCY"],
            category=CATEGORY_SALES,
            description=f"Sale {sale.invoice_number}",
            date=now,
            sale_id=sale.id,
        ))

        shift.total_sales_cents += sale.total_cents
        shift.total_tax_cents += sale.tax_cents
        if payment_type == "cash":
            shift.total_cash_cents += sale.total_cents
        else:
            shift.total_card_cents += sale.total_cents
        shift.sales_count += 1

        if cust is not None:
            add_customer_purchase({
                "customer_id": cust.id,
                "sale_id": sale.id,
                "amount_cents": sale.total_cents,
                "date": now,
                "products": [
                    {"product_id": l.product_id, "name": l.name, "quantity": l.quantity, "price_cents": l.price_cents}
                    for l in sale.lines
                ],
                "points_earned": calculate_loyalty_points(Decimal(sale.total_cents) / 100),
                "discount_applied_cents": sale.discount_cents,
            }, commit=False)

        add_audit_log(
            action="sale.completed",
            user_id=user_id,
            entity="sale",
            entity_id=sale.id,
            sale_id=sale.id,
            invoice_number=sale.invoice_number,
            details={"total_cents": sale.total_cents, "payment_type": payment_type},
        )

        db.session.commit()
        logger.info("Sale %s completed (total_cents=%s)", sale.invoice_number, sale.total_cents)
        return sale

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Sale queries
# ---------------------------------------------------------------------------

def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def get_sale_by_invoice(invoice_number: str) -> Sale | None:
    return db.session.query(Sale).filter(Sale.invoice_number == invoice_number).first()


def list_sales(*, shift_id: int | None = None, customer_id: int | None = None, limit: int | None = None) -> list[Sale]:
    q = db.session.query(Sale)
    if shift_id is not None:
        q = q.filter(Sale.shift_id == shift_id)
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    q = q.order_by(Sale.date.desc(), Sale.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def search_sales_by_invoice_partial(fragment: str) -> list[Sale]:
    """Substring match on invoice number, else prefix match on sale id; newest first."""
    fragment = (fragment or "").strip()
    if not fragment:
        return []

    ordered = (Sale.date.desc(), Sale.id.desc())
    matches = (
        db.session.query(Sale)
        .filter(Sale.invoice_number.ilike(f"%{fragment.upper()}%"))
        .order_by(*ordered)
        .limit(SEARCH_LIMIT)
        .all()
    )
    if matches:
        return matches

    return (
        db.session.query(Sale)
        .filter(cast(Sale.id, String).like(f"{fragment}%"))
        .order_by(*ordered)
        .limit(SEARCH_LIMIT)
        .all()
    )
