from .users import User
from .expenses import ExpenseRequest, ExpenseApproval
from .audit import AuditLog

__all__ = [
    'User',
    'ExpenseRequest', 'ExpenseApproval',
    'AuditLog',
]
