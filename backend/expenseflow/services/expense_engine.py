# Overview: Expense request lifecycle engine (create, approve, decline, issue, direct issue, delete).

"""
Expense lifecycle engine.

WHY: Every status change of an expense request goes through this class so
that locking, the approval ledger, the audit trail and notifications are
applied the same way for every trigger (HTTP, CLI, chat bot).

TRANSITION DISCIPLINE (one row, one transaction):
1. Validate input (no transaction yet)
2. Check the actor's role against ROLE_OPERATIONS
3. Begin transaction; SELECT ... FOR UPDATE the request by id
4. Re-check company scope and status on the locked row
5. Mutate, insert the approval event, write audit entries
6. Commit
7. Dispatch the queued notifications (best effort, after commit)

Concurrent transitions on the same request are serialized by the row
lock. The loser sees the already changed status in step 4 and gets a
STALE_STATE result: first commit wins.

Collaborators (store, audit, directory, notifier) are injected, so the
engine runs unchanged against in-memory fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError

from ..enums import ApprovalAction, ExpenseStatus, Operation, Role, can_transition, role_can
from ..errors import (
    INTERNAL_ERROR_MESSAGE,
    ErrorKind,
    ExpenseError,
    RoleError,
    ScopeError,
    StaleStateError,
    ValidationFailed,
)
from ..models import ExpenseApproval, ExpenseRequest
from ..time_utils import utcnow
from ..validation import (
    validate_amount,
    validate_comment,
    validate_currency,
    validate_not_empty,
)
from .audit_service import AuditLogService
from .directory_service import UserDirectory
from .expense_store import ExpenseStore
from .messages import NO_COMMENT, format_amount
from .notification_service import build_dispatcher

logger = logging.getLogger(__name__)

DECLINE_DEFAULT_COMMENT = "Отклонено директором"
ISSUE_DEFAULT_COMMENT = "Выдано кассиром"


@dataclass
class TransitionResult:
    """
    What every engine operation returns.

    ``error`` is set only on failure and lets callers branch on the kind
    (stale state vs. validation vs. infrastructure) without parsing text.
    """
    success: bool
    message: str | None = None
    request: Any = None
    error: ErrorKind | None = None

    @classmethod
    def ok(cls, request=None, message: str | None = None) -> "TransitionResult":
        return cls(success=True, message=message, request=request)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "TransitionResult":
        return cls(success=False, message=message, error=kind)

    def to_dict(self, *, include_approvals: bool = False) -> dict:
        data: dict = {"success": self.success}
        if self.message:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error.value
        if self.request is not None:
            data["request"] = self.request.to_dict(include_approvals=include_approvals)
        return data


class ExpenseEngine:
    def __init__(
        self,
        store,
        audit,
        directory,
        notifier,
        *,
        default_currency: str = "UZS",
        supported_currencies: Iterable[str] = ("UZS",),
        history_limit: int = 20,
        clock: Callable = utcnow,
    ):
        self.store = store
        self.audit = audit
        self.directory = directory
        self.notifier = notifier
        self.default_currency = default_currency
        self.supported_currencies = frozenset(c.upper() for c in supported_currencies) | {default_currency}
        self.history_limit = history_limit
        self._clock = clock

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create(self, actor, description, amount, currency=None) -> TransitionResult:
        """Requester files a new request in ``pending``; the director is notified."""
        try:
            description = self._require(validate_not_empty(description))
            amount = self._require(validate_amount(amount))
            currency = self._require(validate_currency(currency or self.default_currency, self.supported_currencies))
        except ValidationFailed as exc:
            return TransitionResult.fail(exc.kind, exc.message)

        def work(outbox):
            if actor.company_id is None:
                raise ScopeError("Пользователь не привязан к компании.")

            now = self._clock()
            request = self.store.add_request(ExpenseRequest(
                requester_id=actor.id,
                created_by_id=actor.id,
                description=description,
                amount=amount,
                currency=currency,
                status=ExpenseStatus.pending.value,
                company_id=actor.company_id,
                created_at=now,
                updated_at=now,
            ))
            self.audit.request_created(request, actor.id)

            director = self.directory.director_for_company(request.company_id)
            if director is None:
                logger.warning(
                    "No director to notify request_id=%s company_id=%s",
                    request.id, request.company_id,
                )
            outbox.append(partial(self.notifier.notify_director_new_request, director, request, actor))
            return request, f"Заявка #{request.id} создана и отправлена директору."

        return self._run(Operation.create, actor, None, work)

    def approve(self, actor, request_id: int, comment: str | None = None) -> TransitionResult:
        try:
            comment = self._optional_comment(comment)
        except ValidationFailed as exc:
            return TransitionResult.fail(exc.kind, exc.message)

        def work(outbox):
            request = self._lock_in_scope(actor, request_id)
            self._require_transition(request, ExpenseStatus.approved)

            now = self._clock()
            request.status = ExpenseStatus.approved.value
            request.director_id = actor.id
            request.director_comment = comment
            request.approved_at = now
            request.updated_at = now

            self._add_event(request, actor, ApprovalAction.approve, comment or NO_COMMENT, now)
            self.audit.request_approved(request, actor.id, comment)

            requester = self.directory.get_user(request.requester_id)
            cashier = self.directory.cashier_for_company(request.company_id)
            outbox.append(partial(self.notifier.notify_status, requester, request, ExpenseStatus.approved, comment))
            outbox.append(partial(self.notifier.notify_cashier_approved, cashier, request, requester, comment))
            return request, f"Заявка #{request.id} подтверждена."

        return self._run(Operation.approve, actor, request_id, work)

    def decline(self, actor, request_id: int, reason: str | None = None) -> TransitionResult:
        try:
            reason = self._optional_comment(reason)
        except ValidationFailed as exc:
            return TransitionResult.fail(exc.kind, exc.message)

        def work(outbox):
            request = self._lock_in_scope(actor, request_id)
            self._require_transition(request, ExpenseStatus.declined)

            now = self._clock()
            request.status = ExpenseStatus.declined.value
            request.director_id = actor.id
            request.director_comment = reason
            request.updated_at = now

            self._add_event(request, actor, ApprovalAction.decline, reason or DECLINE_DEFAULT_COMMENT, now)
            self.audit.request_declined(request, actor.id, reason)

            requester = self.directory.get_user(request.requester_id)
            outbox.append(partial(self.notifier.notify_status, requester, request, ExpenseStatus.declined, reason))
            return request, f"Заявка #{request.id} отклонена."

        return self._run(Operation.decline, actor, request_id, work)

    def issue(self, actor, request_id: int, amount=None) -> TransitionResult:
        """
        Cashier hands out the money for an approved request.

        ``amount`` defaults to the approved sum. A different sum is kept in
        ``issued_amount``; ``amount`` itself is never rewritten.
        """
        try:
            issued = self._require(validate_amount(amount)) if amount is not None else None
        except ValidationFailed as exc:
            return TransitionResult.fail(exc.kind, exc.message)

        def work(outbox):
            request = self._lock_in_scope(actor, request_id)
            self._require_transition(request, ExpenseStatus.issued)

            approved_amount = Decimal(request.amount)
            differs = issued is not None and issued != approved_amount

            now = self._clock()
            request.status = ExpenseStatus.issued.value
            request.cashier_id = actor.id
            request.issued_at = now
            request.updated_at = now
            if differs:
                request.issued_amount = issued
                comment = (
                    f"{ISSUE_DEFAULT_COMMENT}. Подтвержденная сумма: "
                    f"{format_amount(approved_amount)} {request.currency}, "
                    f"выдана: {format_amount(issued)} {request.currency}"
                )
            else:
                comment = ISSUE_DEFAULT_COMMENT

            self._add_event(request, actor, ApprovalAction.issue, comment, now)
            self.audit.request_issued(request, actor.id, issued_amount=issued if differs else None)

            requester = self.directory.get_user(request.requester_id)
            outbox.append(partial(self.notifier.notify_status, requester, request, ExpenseStatus.issued))
            return request, f"Заявка #{request.id} отмечена как выданная."

        return self._run(Operation.issue, actor, request_id, work)

    def direct_issue(
        self,
        actor,
        recipient_id: int,
        description,
        amount,
        comment: str | None = None,
        currency=None,
    ) -> TransitionResult:
        """
        Cashier hands out money without a director's approval.

        The request is created directly in ``issued`` with the cashier as
        creator and issuer; the director is told after the fact.
        """
        try:
            description = self._require(validate_not_empty(description))
            amount = self._require(validate_amount(amount))
            currency = self._require(validate_currency(currency or self.default_currency, self.supported_currencies))
            comment = self._optional_comment(comment)
        except ValidationFailed as exc:
            return TransitionResult.fail(exc.kind, exc.message)

        def work(outbox):
            recipient = self.directory.get_user(recipient_id)
            if recipient is None:
                raise ValidationFailed(f"Получатель #{recipient_id} не найден.")
            if actor.company_id is None or recipient.company_id != actor.company_id:
                raise ScopeError("Получатель относится к другой компании.")

            now = self._clock()
            request = self.store.add_request(ExpenseRequest(
                requester_id=recipient.id,
                created_by_id=actor.id,
                cashier_id=actor.id,
                description=description,
                amount=amount,
                currency=currency,
                status=ExpenseStatus.issued.value,
                company_id=actor.company_id,
                created_at=now,
                approved_at=now,
                issued_at=now,
                updated_at=now,
            ))

            event_comment = f"[Для: {recipient.display_name}]"
            if comment:
                event_comment = f"{event_comment} {comment}"
            self._add_event(request, actor, ApprovalAction.direct_issue, event_comment, now)

            self.audit.request_created(request, actor.id, recipient_id=recipient.id, direct_issue=True)
            self.audit.request_issued(request, actor.id, old_status=None, comment=comment, direct=True)

            director = self.directory.director_for_company(request.company_id)
            outbox.append(partial(
                self.notifier.notify_director_direct_issue, director, request, actor, recipient, comment,
            ))
            if recipient.id != actor.id:
                outbox.append(partial(self.notifier.notify_recipient_direct_issue, recipient, request, actor))
            return request, f"Средства выданы, заявка #{request.id}."

        return self._run(Operation.direct_issue, actor, None, work)

    def delete(self, actor, request_id: int, reason: str | None = None) -> TransitionResult:
        """Administrative delete: the request and its approval events go, an audit line stays."""

        def work(outbox):
            request = self._lock_in_scope(actor, request_id)
            status = request.status
            self.store.delete_request(request)
            self.audit.request_deleted(request_id, actor.id, reason, status)
            return None, f"Заявка #{request_id} удалена."

        return self._run(Operation.delete, actor, request_id, work)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: int):
        return self.store.get_request(request_id)

    def approvals_for(self, request_id: int):
        return self.store.approvals_for(request_id)

    def pending_for_company(self, company_id: int):
        return self.store.list_for_company(company_id, [ExpenseStatus.pending], newest_first=False)

    def approved_for_company(self, company_id: int):
        return self.store.list_for_company(company_id, [ExpenseStatus.approved], newest_first=False)

    def history_for_user(self, user, limit: int | None = None):
        """
        Role-aware history, newest first:
        user -> own requests; director -> the company's requests;
        cashier -> the company's approved and issued requests.
        """
        if limit is None or limit <= 0:
            limit = self.history_limit
        role = Role.parse(user.role)

        if role is Role.director:
            return self.store.list_for_company(user.company_id, limit=limit)
        if role is Role.cashier:
            return self.store.list_for_company(
                user.company_id,
                [ExpenseStatus.approved, ExpenseStatus.issued],
                limit=limit,
            )
        return self.store.list_for_requester(user.id, limit=limit)

    @staticmethod
    def can_view(user, request) -> bool:
        if Role.parse(user.role) is Role.user:
            return request.requester_id == user.id
        return user.company_id is not None and user.company_id == request.company_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, operation: Operation, actor, request_id, work) -> TransitionResult:
        outbox: list[Callable] = []
        try:
            if not role_can(actor.role, operation):
                raise RoleError("Недостаточно прав для этой операции.", request_id=request_id)

            with self.store.transaction():
                request, message = work(outbox)
                # Read before commit expires the instance
                record_id = request.id if request is not None else request_id

        except ExpenseError as exc:
            logger.info(
                "Transition rejected op=%s request_id=%s actor_id=%s kind=%s: %s",
                operation.value, request_id, actor.id, exc.kind.value, exc.message,
            )
            return TransitionResult.fail(exc.kind, exc.message)
        except SQLAlchemyError:
            logger.exception(
                "Transition failed op=%s request_id=%s actor_id=%s",
                operation.value, request_id, actor.id,
            )
            return TransitionResult.fail(ErrorKind.INTERNAL, INTERNAL_ERROR_MESSAGE)

        logger.info(
            "Transition applied op=%s request_id=%s actor_id=%s",
            operation.value, record_id, actor.id,
        )
        self._dispatch(outbox, record_id)
        return TransitionResult.ok(request, message)

    @staticmethod
    def _dispatch(outbox, request_id) -> None:
        # Committed already: nothing here may undo or fail the transition
        for send in outbox:
            try:
                send()
            except Exception:
                logger.exception("Notification dispatch failed request_id=%s", request_id)

    def _lock_in_scope(self, actor, request_id: int):
        request = self.store.lock_request(request_id)
        if request is None:
            raise StaleStateError(f"Заявка #{request_id} не найдена.", request_id=request_id)
        if actor.company_id is None or actor.company_id != request.company_id:
            raise ScopeError("Заявка относится к другой компании.", request_id=request_id)
        return request

    @staticmethod
    def _require_transition(request, target: ExpenseStatus) -> None:
        current = ExpenseStatus(request.status)
        if not can_transition(current, target):
            raise StaleStateError(
                f"Заявка #{request.id} уже обработана (статус: {current.label}).",
                request_id=request.id,
            )

    def _add_event(self, request, actor, action: ApprovalAction, comment: str, now) -> None:
        self.store.add_approval(ExpenseApproval(
            expense_request_id=request.id,
            actor_id=actor.id,
            actor_role=Role.parse(actor.role).value,
            action=action.value,
            comment=comment,
            created_at=now,
        ))

    @staticmethod
    def _require(result):
        if not result:
            raise ValidationFailed(result.message)
        return result.value

    def _optional_comment(self, comment):
        if comment is None or not str(comment).strip():
            return None
        return self._require(validate_comment(comment))


def build_engine(config) -> ExpenseEngine:
    """Engine wired to the Flask-SQLAlchemy session and the configured channel."""
    return ExpenseEngine(
        ExpenseStore(),
        AuditLogService(),
        UserDirectory(),
        build_dispatcher(config),
        default_currency=config.get("DEFAULT_CURRENCY", "UZS"),
        supported_currencies=config.get("SUPPORTED_CURRENCIES", ("UZS",)),
        history_limit=int(config.get("HISTORY_LIMIT", 20)),
    )
