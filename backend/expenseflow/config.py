# backend/expenseflow/config.py
from __future__ import annotations
import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip().upper() for part in value.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/expenseflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #PostgreSQL in production (row locks are honoured there)
        "sqlite:///expenseflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Currency used when the caller does not pass one
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "UZS").upper()
    SUPPORTED_CURRENCIES = _csv(os.environ.get("SUPPORTED_CURRENCIES", "UZS,USD,EUR,RUB,KZT"))

    # Empty token: notifications are written to the log instead of Telegram
    TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_API_BASE = os.environ.get("TELEGRAM_API_BASE", "https://api.telegram.org")
    TELEGRAM_TIMEOUT = float(os.environ.get("TELEGRAM_TIMEOUT", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Max rows returned by history views
    HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", "20"))
