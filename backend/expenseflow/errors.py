# Overview: Domain error kinds shared by the engine and its trigger layers.

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    STALE_STATE = "stale_state"
    VALIDATION = "validation"
    SCOPE = "scope"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


INTERNAL_ERROR_MESSAGE = "Внутренняя ошибка. Попробуйте позже."


class ExpenseError(Exception):
    """
    Domain error raised inside an engine transaction.

    Raising it rolls the transaction back; the engine converts it into a
    failed TransitionResult carrying ``kind`` so callers never match on text.
    """
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, request_id: int | None = None):
        super().__init__(message)
        self.message = message
        self.request_id = request_id


class StaleStateError(ExpenseError):
    """The request is missing or no longer in the status the operation needs."""
    kind = ErrorKind.STALE_STATE


class ScopeError(ExpenseError):
    """Participants belong to different companies."""
    kind = ErrorKind.SCOPE


class RoleError(ExpenseError):
    """The actor's role may not perform the operation."""
    kind = ErrorKind.FORBIDDEN


class ValidationFailed(ExpenseError):
    """Malformed input, rejected before any transaction opens."""
    kind = ErrorKind.VALIDATION
