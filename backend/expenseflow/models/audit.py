from __future__ import annotations

from ..extensions import db


class AuditLog(db.Model):
    """
    Generic cross-entity audit trail.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    record_id is a loose pointer (no foreign key) so entries outlive the
    rows they describe, including deleted expense requests.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_table_record", "table_name", "record_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    table_name = db.Column(db.String(100), nullable=False)
    record_id = db.Column(db.Integer, nullable=False)
    actor_id = db.Column(db.Integer, nullable=True, index=True)

    # insert, approved, declined, issued, delete
    action = db.Column(db.String(50), nullable=False, index=True)

    # old/new status, amounts, comments
    payload = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
