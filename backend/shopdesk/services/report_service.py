# Overview: Financial aggregates over bookkeeping transactions.

"""
All figures are integer cents in the requested currency. Conversion goes
through currency_service.convert_currency, so an entry whose currency has
no rate is counted at face value.
"""

from __future__ import annotations

from typing import Iterable

from ..models import Transaction
from shopdesk.time_utils import month_key
from .currency_service import CurrencyRate, calculate_percentage, convert_currency


def _converted_cents(tx: Transaction, currency: str | None, rates: Iterable[CurrencyRate]) -> int:
    if not currency or tx.currency == currency:
        return tx.amount_cents
    return round(convert_currency(tx.amount_cents, tx.currency, currency, rates))


def financial_summary(
    transactions: Iterable[Transaction],
    currency: str = "EGP",
    rates: Iterable[CurrencyRate] = (),
) -> dict:
    rates = list(rates)
    income = expenses = count = 0
    for tx in transactions:
        count += 1
        amount = _converted_cents(tx, currency, rates)
        if tx.type == "income":
            income += amount
        else:
            expenses += amount
    return {
        "currency": currency,
        "total_income_cents": income,
        "total_expenses_cents": expenses,
        "net_income_cents": income - expenses,
        "transaction_count": count,
    }


def category_summary(
    transactions: Iterable[Transaction],
    type: str,
    currency: str | None = None,
    rates: Iterable[CurrencyRate] = (),
) -> list[dict]:
    """Per-category amount, count and share of the type's total; largest first."""
    rates = list(rates)
    buckets: dict[str, dict] = {}
    for tx in transactions:
        if tx.type != type:
            continue
        b = buckets.setdefault(tx.category, {"category": tx.category, "amount_cents": 0, "count": 0})
        b["amount_cents"] += _converted_cents(tx, currency, rates)
        b["count"] += 1

    total = sum(b["amount_cents"] for b in buckets.values())
    rows = sorted(buckets.values(), key=lambda b: (-b["amount_cents"], b["category"]))
    for b in rows:
        b["percentage"] = calculate_percentage(b["amount_cents"], total)
    return rows


def monthly_data(
    transactions: Iterable[Transaction],
    currency: str | None = None,
    rates: Iterable[CurrencyRate] = (),
) -> list[dict]:
    """Income, expenses and net per YYYY-MM, oldest month first."""
    rates = list(rates)
    months: dict[str, dict] = {}
    for tx in transactions:
        key = month_key(tx.date)
        m = months.setdefault(key, {"month": key, "income_cents": 0, "expenses_cents": 0})
        amount = _converted_cents(tx, currency, rates)
        if tx.type == "income":
            m["income_cents"] += amount
        else:
            m["expenses_cents"] += amount

    rows = [months[k] for k in sorted(months)]
    for m in rows:
        m["net_cents"] = m["income_cents"] - m["expenses_cents"]
    return rows
