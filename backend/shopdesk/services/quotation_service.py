# Overview: Price quotations for prospective customers.

from __future__ import annotations

from ..extensions import db
from ..models import Quotation, QuotationLine
from ..validation import MAX_AMOUNT_CENTS, ValidationError


class QuotationError(Exception):
    """Raised for quotation operation errors."""
    pass


def _parse_lines(items) -> list[QuotationLine]:
    if not isinstance(items, list) or not items:
        raise ValidationError("A quotation needs at least one line")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each line must be an object")
        name = str(item.get("name") or "").strip()
        if not name:
            raise ValidationError("Line name is required")
        try:
            quantity = int(item.get("quantity"))
            price_cents = int(item.get("price_cents"))
        except (TypeError, ValueError):
            raise ValidationError("quantity and price_cents must be integers")
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")
        if price_cents < 0 or price_cents > MAX_AMOUNT_CENTS:
            raise ValidationError("price_cents out of range")
        lines.append(QuotationLine(name=name, quantity=quantity, price_cents=price_cents))
    return lines


def add_quotation(data: dict, user_id: int | None = None) -> Quotation:
    company = str(data.get("company") or "").strip()
    if not company:
        raise ValidationError("company is required")

    try:
        tax_rate_pct = float(data.get("tax_rate_pct") or 0)
    except (TypeError, ValueError):
        raise ValidationError("tax_rate_pct must be a number")
    if not 0 <= tax_rate_pct <= 100:
        raise ValidationError("tax_rate_pct must be between 0 and 100")

    quotation = Quotation(
        company=company,
        tax_rate_pct=tax_rate_pct,
        payment_terms=(data.get("payment_terms") or None),
        delivery_date=(data.get("delivery_date") or None),
        user_id=user_id,
    )
    quotation.lines.extend(_parse_lines(data.get("lines")))

    db.session.add(quotation)
    db.session.commit()
    return quotation


def get_quotations() -> list[Quotation]:
    return db.session.query(Quotation).order_by(Quotation.created_at.desc(), Quotation.id.desc()).all()


def get_quotation(quotation_id: int) -> Quotation | None:
    return db.session.get(Quotation, quotation_id)


def delete_quotation(quotation_id: int) -> None:
    quotation = db.session.get(Quotation, quotation_id)
    if quotation is None:
        raise QuotationError("Quotation not found")
    db.session.delete(quotation)
    db.session.commit()
