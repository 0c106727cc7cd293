# Overview: Closed value sets for roles, request statuses, and ledger actions.

"""
Roles, statuses and the role -> operation table.

STATE MACHINE:
    pending -> approved -> issued
    pending -> declined

    A direct issue creates a request that is already ``issued``.
    Every status except ``pending`` is terminal for director actions,
    and ``issued`` / ``declined`` are terminal for everyone.

The ROLE_OPERATIONS table is checked when this module is imported: every
Role member must have an entry, and an unknown role string is a
configuration error (UnknownRoleError), never a silent default.
"""

from __future__ import annotations

import enum


class UnknownRoleError(LookupError):
    """A role value outside the Role enum reached the engine."""


class Role(str, enum.Enum):
    user = "user"
    director = "director"
    cashier = "cashier"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]

    @classmethod
    def parse(cls, value) -> "Role":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownRoleError(f"Unknown role {value!r}") from None


class ExpenseStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    declined = "declined"
    issued = "issued"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return not any(src is self for src, _ in ALLOWED_TRANSITIONS)


class ApprovalAction(str, enum.Enum):
    approve = "approve"
    decline = "decline"
    issue = "issue"
    direct_issue = "direct_issue"


class Operation(str, enum.Enum):
    create = "create"
    approve = "approve"
    decline = "decline"
    issue = "issue"
    direct_issue = "direct_issue"
    delete = "delete"


ROLE_LABELS = {
    Role.user: "Пользователь",
    Role.director: "Директор",
    Role.cashier: "Кассир",
}

STATUS_LABELS = {
    ExpenseStatus.pending: "Ожидает руководителя",
    ExpenseStatus.approved: "Одобрено руководителем",
    ExpenseStatus.declined: "Отклонено руководителем",
    ExpenseStatus.issued: "Выдано (кассир)",
}

ROLE_OPERATIONS: dict[Role, frozenset[Operation]] = {
    Role.user: frozenset({Operation.create}),
    Role.director: frozenset({
        Operation.create,
        Operation.approve,
        Operation.decline,
        Operation.delete,
    }),
    Role.cashier: frozenset({
        Operation.create,
        Operation.issue,
        Operation.direct_issue,
    }),
}

# (from, to) pairs; anything else is rejected
ALLOWED_TRANSITIONS = frozenset({
    (ExpenseStatus.pending, ExpenseStatus.approved),
    (ExpenseStatus.pending, ExpenseStatus.declined),
    (ExpenseStatus.approved, ExpenseStatus.issued),
})


def can_transition(from_status, to_status) -> bool:
    return (ExpenseStatus(from_status), ExpenseStatus(to_status)) in ALLOWED_TRANSITIONS


def role_can(role, operation: Operation) -> bool:
    return operation in ROLE_OPERATIONS[Role.parse(role)]


def _check_tables() -> None:
    for table_name, table, members in (
        ("ROLE_LABELS", ROLE_LABELS, Role),
        ("ROLE_OPERATIONS", ROLE_OPERATIONS, Role),
        ("STATUS_LABELS", STATUS_LABELS, ExpenseStatus),
    ):
        missing = [m.value for m in members if m not in table]
        if missing:
            raise RuntimeError(f"{table_name} has no entry for: {', '.join(missing)}")


_check_tables()
