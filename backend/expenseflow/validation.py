from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum amount: 10,000,000,000.00 (inclusive)
# Larger values do not fit the NUMERIC(14, 2) amount columns.
MAX_AMOUNT = Decimal("10000000000")

COMMENT_MIN_LENGTH = 3
COMMENT_MAX_LENGTH = 1000

CENTS = Decimal("0.01")

# Plain decimal only: no exponent, no inf/nan, at most one separator
_AMOUNT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a validator:
    - valid: whether the input passed
    - value: normalized value (Decimal for amounts, stripped text otherwise)
    - message: user-facing reason when invalid
    """
    valid: bool
    value: Any = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls, value: Any = None) -> "ValidationResult":
        return cls(valid=True, value=value)

    @classmethod
    def fail(cls, message: str) -> "ValidationResult":
        return cls(valid=False, message=message)


def normalize_numeric_input(text: str) -> str:
    """Drop spaces (thousands separators) and turn decimal commas into dots."""
    return (
        text.strip()
        .replace("\u00a0", "")
        .replace(" ", "")
        .replace(",", ".")
    )


def validate_amount(text) -> ValidationResult:
    """
    Parse a money amount typed by a person.

    "1 234,56" -> Decimal("1234.56"). Rejects empty, non-numeric,
    exponent notation, zero/negative and anything above MAX_AMOUNT.
    Decimal and int inputs skip the text normalization step.
    """
    if text is None:
        return ValidationResult.fail("Сумма не может быть пустой.")

    if isinstance(text, bool):
        return ValidationResult.fail(
            "Неверный формат суммы. Введите положительное число, например: 100000"
        )

    if isinstance(text, Decimal):
        normalized = format(text, "f")
    elif isinstance(text, int):
        normalized = str(text)
    else:
        normalized = normalize_numeric_input(str(text))

    if normalized == "":
        return ValidationResult.fail("Сумма не может быть пустой.")

    if not _AMOUNT_RE.match(normalized):
        return ValidationResult.fail(
            "Неверный формат суммы. Введите положительное число, например: 100000"
        )

    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        return ValidationResult.fail(
            "Неверный формат суммы. Введите положительное число, например: 100000"
        )

    if amount <= 0:
        return ValidationResult.fail("Сумма должна быть больше нуля.")

    if amount > MAX_AMOUNT:
        return ValidationResult.fail("Сумма слишком большая. Введите число не более 10 млрд.")

    quantized = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if quantized <= 0:
        return ValidationResult.fail("Сумма должна быть больше нуля.")

    return ValidationResult.ok(quantized)


def validate_comment(text) -> ValidationResult:
    trimmed = (text or "").strip()

    if trimmed == "":
        return ValidationResult.fail("Комментарий не может быть пустым.")

    if len(trimmed) < COMMENT_MIN_LENGTH:
        return ValidationResult.fail(
            f"Комментарий должен содержать минимум {COMMENT_MIN_LENGTH} символа."
        )

    if len(trimmed) > COMMENT_MAX_LENGTH:
        return ValidationResult.fail(
            f"Комментарий слишком длинный (максимум {COMMENT_MAX_LENGTH} символов)."
        )

    return ValidationResult.ok(trimmed)


def validate_not_empty(text) -> ValidationResult:
    trimmed = (text or "").strip()
    if trimmed == "":
        return ValidationResult.fail("Поле не может быть пустым.")
    return ValidationResult.ok(trimmed)


def validate_currency(code, supported) -> ValidationResult:
    """Known 3-letter code from the configured list."""
    normalized = (code or "").strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        return ValidationResult.fail("Код валюты должен состоять из трёх букв.")
    if normalized not in supported:
        return ValidationResult.fail(f"Валюта {normalized} не поддерживается.")
    return ValidationResult.ok(normalized)
