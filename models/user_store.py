"""
User store: lookup-by-email, lookup-by-id and create over DBStorage.
Emails are normalised (stripped, lower-cased) on the way in and on lookup.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User
from services.exceptions import EmailTaken

logger = logging.getLogger(__name__)


def normalize_email(email):
    return email.strip().lower() if isinstance(email, str) else email


class SQLUserStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def get_by_email(self, email: str) -> Optional[User]:
        session = self._storage.get_session()
        return session.query(User).filter(User.email == normalize_email(email)).first()

    def get(self, user_id: str) -> Optional[User]:
        return self._storage.get(User, user_id)

    def create(self, nickname: str, email: str, password_hash: str) -> User:
        """Insert a user. Raises EmailTaken when the email is already registered."""
        email = normalize_email(email)
        if self.get_by_email(email) is not None:
            raise EmailTaken()

        user = User(nickname=nickname.strip(), email=email, password_hash=password_hash)
        self._storage.new(user)
        try:
            self._storage.save()
        except IntegrityError:
            # Lost a race with a concurrent registration; the unique index decides
            logger.info("Concurrent registration for an existing email rejected")
            raise EmailTaken()
        return user

    def update_password_hash(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        self._storage.new(user)
        self._storage.save()
