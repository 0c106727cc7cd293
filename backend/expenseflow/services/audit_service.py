# Overview: Append-only audit trail writer for expense lifecycle events.

"""
Audit log invariants

- Append-only: no reads, no updates, no deletes from here.
- No uniqueness: a retried transition may write a duplicate line.
- Entries are written inside the same DB transaction as the transition,
  each one in its own SAVEPOINT.
- A failed write never reaches the caller. It is logged and the
  transition goes on: a missing audit line is tolerable, a lost
  transition is not.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..enums import ExpenseStatus
from ..models import AuditLog

logger = logging.getLogger(__name__)

EXPENSE_TABLE = "expense_requests"


def _jsonable(value):
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, ExpenseStatus):
        return value.value
    return value


def _clean(payload: dict) -> dict:
    return {k: _jsonable(v) for k, v in payload.items() if v is not None}


class AuditLogService:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def record(
        self,
        table_name: str,
        record_id: int,
        actor_id: int | None,
        action: str,
        payload: dict | None = None,
    ) -> AuditLog | None:
        """
        Append one audit entry. Returns it, or None when the write failed.
        """
        try:
            with self.session.begin_nested():
                entry = AuditLog(
                    table_name=table_name,
                    record_id=record_id,
                    actor_id=actor_id,
                    action=action,
                    payload=_clean(payload or {}),
                )
                self.session.add(entry)
        except Exception:
            logger.exception(
                "Failed to write audit log table=%s record_id=%s actor_id=%s action=%s",
                table_name, record_id, actor_id, action,
            )
            return None

        logger.debug(
            "Audit log written table=%s record_id=%s actor_id=%s action=%s",
            table_name, record_id, actor_id, action,
        )
        return entry

    # ------------------------------------------------------------------
    # Payload shapes per transition (no extra behavior)
    # ------------------------------------------------------------------

    def request_created(self, request, actor_id: int, **extra) -> AuditLog | None:
        return self.record(EXPENSE_TABLE, request.id, actor_id, "insert", {
            "amount": request.amount,
            "currency": request.currency,
            "description": request.description,
            "new_status": request.status,
            **extra,
        })

    def request_approved(self, request, actor_id: int, comment: str | None) -> AuditLog | None:
        return self.record(EXPENSE_TABLE, request.id, actor_id, "approved", {
            "comment": comment,
            "old_status": ExpenseStatus.pending,
            "new_status": ExpenseStatus.approved,
        })

    def request_declined(self, request, actor_id: int, reason: str | None) -> AuditLog | None:
        return self.record(EXPENSE_TABLE, request.id, actor_id, "declined", {
            "reason": reason,
            "old_status": ExpenseStatus.pending,
            "new_status": ExpenseStatus.declined,
        })

    def request_issued(
        self,
        request,
        actor_id: int,
        *,
        old_status: ExpenseStatus | None = ExpenseStatus.approved,
        issued_amount: Decimal | None = None,
        comment: str | None = None,
        direct: bool = False,
    ) -> AuditLog | None:
        payload = {
            "old_status": old_status,
            "new_status": ExpenseStatus.issued,
            "comment": comment,
        }
        if issued_amount is not None:
            payload.update({
                "original_amount": request.amount,
                "issued_amount": issued_amount,
                "currency": request.currency,
            })
        if direct:
            payload["direct_issue"] = True
        return self.record(EXPENSE_TABLE, request.id, actor_id, "issued", payload)

    def request_deleted(self, request_id: int, actor_id: int, reason: str | None, status: str | None = None) -> AuditLog | None:
        return self.record(EXPENSE_TABLE, request_id, actor_id, "delete", {
            "reason": reason,
            "old_status": status,
        })
