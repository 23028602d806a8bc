# Overview: Income/expense bookkeeping entries.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Transaction
from shopdesk.time_utils import utcnow

TRANSACTION_MUTABLE_FIELDS = {"type", "amount_cents", "currency", "category", "description", "date", "supplier_id"}


class TransactionError(Exception):
    """Raised for transaction operation errors."""
    pass


def add_transaction(form: dict, added_by: int | None) -> Transaction:
    """Record a manual entry; date defaults to now."""
    tx = Transaction(user_id=added_by)
    for k, v in form.items():
        if k in TRANSACTION_MUTABLE_FIELDS:
            setattr(tx, k, v)
    if tx.date is None:
        tx.date = utcnow()
    db.session.add(tx)
    db.session.commit()
    return tx


def query_transactions(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    type: str | None = None,
    category: str | None = None,
):
    q = db.session.query(Transaction)
    if start is not None:
        q = q.filter(Transaction.date >= start)
    if end is not None:
        q = q.filter(Transaction.date < end)
    if type:
        q = q.filter(Transaction.type == type)
    if category:
        q = q.filter(Transaction.category == category)
    return q


def get_transactions(**filters) -> list[Transaction]:
    """Newest by date first; accepts the filters of query_transactions."""
    return (
        query_transactions(**filters)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def get_transaction(transaction_id: int) -> Transaction | None:
    return db.session.get(Transaction, transaction_id)


def get_transactions_since(cursor: int | None = None, limit: int = 500) -> dict:
    """
    Polling change feed: entries with id > cursor in insertion order,
    plus the cursor to pass next time.
    """
    q = db.session.query(Transaction)
    if cursor:
        q = q.filter(Transaction.id > cursor)
    items = q.order_by(Transaction.id.asc()).limit(limit).all()
    next_cursor = items[-1].id if items else (cursor or 0)
    return {"items": items, "cursor": next_cursor}


def update_transaction(transaction_id: int, patch: dict) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if tx is None:
        raise TransactionError("Transaction not found")
    for k, v in patch.items():
        if k in TRANSACTION_MUTABLE_FIELDS:
            setattr(tx, k, v)
    db.session.commit()
    return tx


def delete_transaction(transaction_id: int) -> None:
    tx = db.session.get(Transaction, transaction_id)
    if tx is None:
        raise TransactionError("Transaction not found")
    db.session.delete(tx)
    db.session.commit()


def get_categories(type: str | None = None) -> list[str]:
    q = db.session.query(Transaction.category).distinct()
    if type:
        q = q.filter(Transaction.type == type)
    return sorted(c for (c,) in q.all() if c)
