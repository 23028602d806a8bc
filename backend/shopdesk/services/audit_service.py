# Overview: Append-only audit log of business events.

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import AuditLog


def add_audit_log(
    *,
    action: str,
    user_id: int | None = None,
    entity: str | None = None,
    entity_id: int | None = None,
    details: Any = None,
    sale_id: int | None = None,
    invoice_number: str | None = None,
) -> AuditLog:
    """
    Stage an audit entry in the current DB transaction.

    No commit here: the entry must land (or roll back) together with the
    change it describes.
    """
    entry = AuditLog(
        action=action,
        user_id=user_id,
        entity=entity,
        entity_id=entity_id,
        details=details,
        sale_id=sale_id,
        invoice_number=invoice_number,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_audit_logs(
    *,
    action: str | None = None,
    user_id: int | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    q = db.session.query(AuditLog)
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
