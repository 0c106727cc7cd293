# Overview: Persistence for expense requests and their approval ledger.

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable

from ..extensions import db
from ..enums import ExpenseStatus
from ..models import ExpenseRequest, ExpenseApproval
from .concurrency import atomic, lock_for_update


class ExpenseStore:
    """
    SQLAlchemy-backed store used by the lifecycle engine.

    The engine talks to persistence only through this class:
    begin transaction; select-for-update one row by id; mutate; add child
    rows; commit. Writes inside ``transaction()`` are flushed, never
    committed, until the block exits.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        # Resolved lazily so the store can be built before an app context exists
        return self._session if self._session is not None else db.session

    @contextmanager
    def transaction(self):
        with atomic(self.session):
            yield self

    def lock_request(self, request_id: int) -> ExpenseRequest | None:
        """Load one request with an exclusive row lock (inside a transaction)."""
        # populate_existing: an instance already in the identity map is
        # overwritten with the locked row, never checked from its old state
        return (
            lock_for_update(self.session.query(ExpenseRequest).filter_by(id=request_id))
            .populate_existing()
            .first()
        )

    def add_request(self, request: ExpenseRequest) -> ExpenseRequest:
        self.session.add(request)
        self.session.flush()  # ensures request.id is assigned without committing
        return request

    def add_approval(self, approval: ExpenseApproval) -> ExpenseApproval:
        self.session.add(approval)
        self.session.flush()
        return approval

    def delete_request(self, request: ExpenseRequest) -> None:
        # ORM cascade removes the approval rows
        self.session.delete(request)
        self.session.flush()

    def get_request(self, request_id: int) -> ExpenseRequest | None:
        return self.session.get(ExpenseRequest, request_id)

    def approvals_for(self, request_id: int) -> list[ExpenseApproval]:
        return (
            self.session.query(ExpenseApproval)
            .filter_by(expense_request_id=request_id)
            .order_by(ExpenseApproval.created_at.asc(), ExpenseApproval.id.asc())
            .all()
        )

    def list_for_company(
        self,
        company_id: int,
        statuses: Iterable[ExpenseStatus] | None = None,
        *,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[ExpenseRequest]:
        q = self.session.query(ExpenseRequest).filter_by(company_id=company_id)
        if statuses:
            q = q.filter(ExpenseRequest.status.in_([ExpenseStatus(s).value for s in statuses]))

        order = ExpenseRequest.created_at.desc() if newest_first else ExpenseRequest.created_at.asc()
        q = q.order_by(order, ExpenseRequest.id.desc() if newest_first else ExpenseRequest.id.asc())

        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def list_for_requester(self, requester_id: int, *, limit: int | None = None) -> list[ExpenseRequest]:
        q = (
            self.session.query(ExpenseRequest)
            .filter_by(requester_id=requester_id)
            .order_by(ExpenseRequest.created_at.desc(), ExpenseRequest.id.desc())
        )
        if limit is not None:
            q = q.limit(limit)
        return q.all()
