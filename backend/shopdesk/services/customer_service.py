# Overview: Customers, purchase history and loyalty points.

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import Customer, CustomerPurchase, Sale
from ..validation import ConflictError
from shopdesk.time_utils import utcnow, to_utc_z

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address", "discount_pct", "notes"}

# One point per 10 units of currency spent
LOYALTY_POINT_UNIT = 10


class CustomerError(Exception):
    """Raised for customer operation errors."""
    pass


def calculate_loyalty_points(amount: float | Decimal) -> int:
    """floor(amount / 10), in major currency units; negative amounts earn nothing."""
    if amount <= 0:
        return 0
    return math.floor(amount / LOYALTY_POINT_UNIT)


def _ensure_phone_free(phone: str | None, *, exclude_id: int | None = None) -> None:
    if not phone:
        return
    q = db.session.query(Customer).filter(Customer.phone == phone)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"A customer with phone {phone} already exists")


def add_customer(patch: dict, *, commit: bool = True) -> Customer:
    _ensure_phone_free(patch.get("phone"))

    customer = Customer(loyalty_points=0, total_purchases_cents=0, discount_pct=0.0)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    db.session.add(customer)
    db.session.flush()
    if commit:
        db.session.commit()
    return customer


def get_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def find_customer_by_phone(phone: str) -> Customer | None:
    phone = (phone or "").strip()
    if not phone:
        return None
    return db.session.query(Customer).filter(Customer.phone == phone).first()


def search_customers(term: str, limit: int = 20) -> list[Customer]:
    """Substring match on name or phone."""
    term = (term or "").strip()
    if not term:
        return []
    like = f"%{term}%"
    return (
        db.session.query(Customer)
        .filter(db.or_(Customer.name.ilike(like), Customer.phone.like(like)))
        .order_by(Customer.name.asc())
        .limit(limit)
        .all()
    )


def update_customer(customer_id: int, patch: dict) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerError("Customer not found")
    if "phone" in patch:
        _ensure_phone_free(patch["phone"], exclude_id=customer_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def delete_customer(customer_id: int) -> None:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerError("Customer not found")
    db.session.delete(customer)
    db.session.commit()


def add_customer_purchase(purchase: dict, *, commit: bool = True) -> CustomerPurchase:
    """
    Append a purchase record and roll it into the customer's running totals
    (loyalty points, total purchases, last purchase date).
    """
    customer = db.session.get(Customer, purchase["customer_id"])
    if customer is None:
        raise CustomerError("Customer not found")

    date = purchase.get("date") or utcnow()
    record = CustomerPurchase(
        customer_id=customer.id,
        sale_id=purchase.get("sale_id"),
        amount_cents=int(purchase["amount_cents"]),
        date=date,
        products=purchase.get("products") or [],
        points_earned=int(purchase.get("points_earned") or 0),
        discount_applied_cents=int(purchase.get("discount_applied_cents") or 0),
    )
    db.session.add(record)

    customer.loyalty_points = (customer.loyalty_points or 0) + record.points_earned
    customer.total_purchases_cents = (customer.total_purchases_cents or 0) + record.amount_cents
    customer.last_purchase_at = date

    db.session.flush()
    if commit:
        db.session.commit()
    return record


def _purchase_from_sale(sale: Sale) -> dict:
    return {
        "id": None,
        "customer_id": sale.customer_id,
        "sale_id": sale.id,
        "amount_cents": sale.total_cents,
        "date": sale.date,
        "products": [
            {
                "product_id": line.product_id,
                "name": line.name,
                "quantity": line.quantity,
                "price_cents": line.price_cents,
            }
            for line in sale.lines
        ],
        "points_earned": calculate_loyalty_points(Decimal(sale.total_cents) / 100),
        "discount_applied_cents": sale.discount_cents,
    }


def get_customer_purchases(customer_id: int | None) -> list[dict]:
    """
    Purchase history, newest first.

    Reads customer_purchases; when a customer has none recorded (e.g. sales
    made before loyalty tracking), it is rebuilt from the sales table.
    """
    if not customer_id:
        return []

    records = (
        db.session.query(CustomerPurchase)
        .filter(CustomerPurchase.customer_id == customer_id)
        .order_by(CustomerPurchase.date.desc(), CustomerPurchase.id.desc())
        .all()
    )
    if records:
        return [r.to_dict() for r in records]

    sales = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer_id)
        .order_by(Sale.date.desc(), Sale.id.desc())
        .all()
    )

    rows = []
    for sale in sales:
        row = _purchase_from_sale(sale)
        row["date"] = to_utc_z(row["date"]) if isinstance(row["date"], datetime) else row["date"]
        rows.append(row)
    return rows
