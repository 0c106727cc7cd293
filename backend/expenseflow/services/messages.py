# Overview: Chat message templates and inline keyboards for lifecycle notifications.

from __future__ import annotations

from decimal import Decimal

from ..enums import ExpenseStatus

NO_COMMENT = "-"


def format_amount(value) -> str:
    """1234567.5 -> '1 234 567.50'"""
    return f"{Decimal(value):,.2f}".replace(",", " ")


def _money(value, currency: str) -> str:
    return f"{format_amount(value)} {currency}"


def _has_comment(comment: str | None) -> bool:
    return bool(comment) and comment != NO_COMMENT


def new_request(request, requester) -> str:
    return (
        f"Новая заявка #{request.id}\n"
        f"Пользователь: {requester.display_name} (ID: {requester.id})\n"
        f"Сумма: {_money(request.amount, request.currency)}\n"
        f"Комментарий: {request.description or NO_COMMENT}"
    )


def status_changed(request, status: ExpenseStatus, comment: str | None = None) -> str:
    status = ExpenseStatus(status)

    if status is ExpenseStatus.approved:
        text = (
            f"Ваша заявка #{request.id} ✅ подтверждена директором.\n"
            "Ожидайте выдачи от кассира."
        )
    elif status is ExpenseStatus.declined:
        text = (
            f"Ваша заявка #{request.id} 🚫 отклонена директором.\n"
            f"Сумма: {_money(request.amount, request.currency)}\n"
            f"Описание: {request.description or NO_COMMENT}"
        )
    elif status is ExpenseStatus.issued:
        text = (
            f"Ваша заявка #{request.id} 💰 выдана кассиром.\n"
            "Вы можете получить средства."
        )
        if request.issued_amount is not None:
            text += f"\nВыдана сумма: {_money(request.issued_amount, request.currency)}"
    else:
        text = f"Ваша заявка #{request.id} обновлена."

    if _has_comment(comment):
        text += f"\nКомментарий: {comment}"
    return text


def cashier_approved(request, requester, director_comment: str | None = None) -> str:
    text = (
        f"Заявка #{request.id} подтверждена директором.\n"
        f"Сумма: {_money(request.amount, request.currency)}\n"
        f"Ожидает выдачи указанной суммы {requester.display_name} (ID: {requester.id})"
    )
    if _has_comment(director_comment):
        text += f"\nКомментарий директора: {director_comment}"
    return text


def direct_issue_report(request, cashier, recipient, comment: str | None = None) -> str:
    text = (
        f"ℹ️ Кассир {cashier.display_name} выдал средства без подтверждения.\n"
        f"Заявка #{request.id}\n"
        f"Получатель: {recipient.display_name} (ID: {recipient.id})\n"
        f"Сумма: {_money(request.amount, request.currency)}\n"
        f"Назначение: {request.description or NO_COMMENT}"
    )
    if _has_comment(comment):
        text += f"\nКомментарий: {comment}"
    return text


def direct_issue_receipt(request, cashier) -> str:
    return (
        f"💰 Вам выданы средства по заявке #{request.id}.\n"
        f"Сумма: {_money(request.amount, request.currency)}\n"
        f"Назначение: {request.description or NO_COMMENT}\n"
        f"Кассир: {cashier.display_name}"
    )


def _inline(rows: list[list[tuple[str, str]]]) -> dict:
    return {
        "inline_keyboard": [
            [{"text": text, "callback_data": data} for text, data in row]
            for row in rows
        ]
    }


def approval_keyboard(request_id: int) -> dict:
    return _inline([
        [
            ("✅ Подтвердить", f"expense:confirm:{request_id}"),
            ("❌ Отклонить", f"expense:decline:{request_id}"),
        ],
        [("💬 Подтвердить с комментарием", f"expense:confirm_with_comment:{request_id}")],
    ])


def issue_keyboard(request_id: int) -> dict:
    return _inline([
        [("✅ Выдано полностью", f"expense:issued_full:{request_id}")],
        [("✏️ Выдать другую сумму", f"expense:issued_different:{request_id}")],
    ])
