from __future__ import annotations

from ..extensions import db
from ..enums import Role


class User(db.Model):
    """
    Company member as synced from the HR directory.

    The engine only reads this table: company_id scopes every transition,
    role decides what the user may do, telegram_id is the delivery address
    for notifications (nullable: not every employee has started the bot).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_company_role", "company_id", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    login = db.Column(db.String(100), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)

    # Chat id used by the notification channel
    telegram_id = db.Column(db.BigInteger, nullable=True)

    # user, director, cashier (see enums.Role)
    role = db.Column(db.String(32), nullable=False, default=Role.user.value)

    # Tenant boundary
    company_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def display_name(self) -> str:
        return self.full_name or self.login or "Unknown"
