# Overview: Read-only lookups of company members for notification routing.

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..enums import Role
from ..models import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """
    Resolve "the director / cashier of company C".

    No match is a normal condition: every lookup returns None or an empty
    list, logging instead of raising, so a company without a reachable
    approver never blocks a transition.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def get_user(self, user_id: int | None) -> User | None:
        if user_id is None:
            return None
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError:
            logger.exception("User lookup failed user_id=%s", user_id)
            return None

    def users_with_role(
        self,
        company_id: int | None,
        role: Role,
        *,
        require_address: bool = True,
    ) -> list[User]:
        if company_id is None:
            return []

        role = Role.parse(role)
        try:
            q = self.session.query(User).filter(
                User.company_id == company_id,
                User.role == role.value,
            )
            if require_address:
                q = q.filter(User.telegram_id.isnot(None))
            return q.order_by(User.id.asc()).all()
        except SQLAlchemyError:
            logger.exception("Directory lookup failed company_id=%s role=%s", company_id, role.value)
            return []

    def director_for_company(self, company_id: int | None) -> User | None:
        return self._first(company_id, Role.director)

    def cashier_for_company(self, company_id: int | None) -> User | None:
        return self._first(company_id, Role.cashier)

    def _first(self, company_id, role: Role) -> User | None:
        users = self.users_with_role(company_id, role)
        if not users:
            logger.info("No %s with a delivery address in company_id=%s", role.value, company_id)
            return None
        return users[0]
