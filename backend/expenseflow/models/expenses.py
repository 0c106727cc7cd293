from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..enums import ExpenseStatus
from ..time_utils import to_utc_z


def _money(value) -> str | None:
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


class ExpenseRequest(db.Model):
    """
    Request for company funds.

    LIFECYCLE:
    1. pending: created by the requester, waiting for the director
    2. approved: director approved, waiting for the cashier
    3. issued: cashier handed out the money (terminal)
    4. declined: director declined (terminal)

    A direct issue is created straight in ``issued`` with
    approved_at == issued_at and the cashier as creator and issuer.

    AMOUNTS: ``amount`` is what was requested/approved and is never
    rewritten. ``issued_amount`` is set only when the cashier handed out a
    different sum; readers use ``effective_amount``.

    company_id is immutable after creation. Status changes happen only
    through the lifecycle engine, under a row lock.
    """
    __tablename__ = "expense_requests"
    __table_args__ = (
        db.Index("ix_expense_requests_status_created", "status", "created_at"),
        db.Index("ix_expense_requests_company_status", "company_id", "status"),
        db.CheckConstraint("amount > 0", name="ck_expense_requests_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Differs from requester_id only for direct issues (the cashier)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    description = db.Column(db.Text, nullable=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="UZS")

    # pending, approved, declined, issued
    status = db.Column(db.String(16), nullable=False, default=ExpenseStatus.pending.value, index=True)

    # Tenant boundary
    company_id = db.Column(db.Integer, nullable=False, index=True)

    director_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    director_comment = db.Column(db.Text, nullable=True)

    issued_amount = db.Column(db.Numeric(14, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    requester = db.relationship("User", foreign_keys=[requester_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    director = db.relationship("User", foreign_keys=[director_id])
    cashier = db.relationship("User", foreign_keys=[cashier_id])

    approvals = db.relationship(
        "ExpenseApproval",
        back_populates="expense_request",
        cascade="all, delete-orphan",
        order_by="ExpenseApproval.created_at",
    )

    @property
    def status_enum(self) -> ExpenseStatus:
        return ExpenseStatus(self.status)

    @property
    def effective_amount(self) -> Decimal:
        """Money actually handed out (or requested, until issued)."""
        if self.issued_amount is not None:
            return Decimal(self.issued_amount)
        return Decimal(self.amount)

    @property
    def is_direct_issue(self) -> bool:
        # Issued without ever passing through a director
        return self.director_id is None and self.cashier_id is not None and self.created_by_id == self.cashier_id

    def to_dict(self, *, include_approvals: bool = False) -> dict:
        data = {
            "id": self.id,
            "requester_id": self.requester_id,
            "created_by_id": self.created_by_id,
            "description": self.description,
            "amount": _money(self.amount),
            "issued_amount": _money(self.issued_amount),
            "effective_amount": _money(self.effective_amount),
            "currency": self.currency,
            "status": self.status,
            "status_label": self.status_enum.label,
            "direct_issue": self.is_direct_issue,
            "company_id": self.company_id,
            "director_id": self.director_id,
            "cashier_id": self.cashier_id,
            "director_comment": self.director_comment,
            "created_at": to_utc_z(self.created_at),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "issued_at": to_utc_z(self.issued_at) if self.issued_at else None,
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_approvals:
            data["approvals"] = [a.to_dict() for a in self.approvals]
        return data


class ExpenseApproval(db.Model):
    """
    Human-readable approval ledger: one row per applied transition.

    Append-only, ordered by created_at, removed only together with its
    request (cascade).
    """
    __tablename__ = "expense_approvals"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    expense_request_id = db.Column(
        db.Integer,
        db.ForeignKey("expense_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    actor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    actor_role = db.Column(db.String(30), nullable=False)

    # approve, decline, issue, direct_issue
    action = db.Column(db.String(30), nullable=False)
    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    expense_request = db.relationship("ExpenseRequest", back_populates="approvals")
    actor = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_request_id": self.expense_request_id,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
