from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


class AuditLog(db.Model):
    """
    Append-only record of user-visible business events
    (sale, return, partial_return, add/edit/delete of master data).
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(32), nullable=False, index=True)
    entity = db.Column(db.String(32), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    details = db.Column(db.JSON, nullable=True)

    sale_id = db.Column(db.Integer, nullable=True)
    invoice_number = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "details": self.details,
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "created_at": to_utc_z(self.created_at),
        }
