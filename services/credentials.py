"""
Credential verification.

`verify` always runs exactly one argon2 comparison, against the stored hash
when the user exists and against a dummy hash of the same cost when it does
not, so response time does not reveal whether an email is registered.
"""
from __future__ import annotations

import logging
import secrets

from argon2 import PasswordHasher

from models.user import User
from models.user_store import SQLUserStore
from services.exceptions import BadRequest, InvalidCredentials
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class CredentialVerifier:
    def __init__(self, users: SQLUserStore, hasher: PasswordHasher):
        self._users = users
        self._ph = hasher
        self._dummy_hash = hash_password(hasher, secrets.token_urlsafe(16))

    def verify(self, email: str, password: str) -> str:
        """Return the user id for matching credentials, else raise InvalidCredentials."""
        return self.authenticate(email, password).id

    def authenticate(self, email: str, password: str) -> User:
        if not email or not password:
            raise BadRequest("Email and password are required")

        user = self._users.get_by_email(email)
        stored_hash = user.password_hash if user is not None else self._dummy_hash
        matched = verify_password(self._ph, password, stored_hash)
        if user is None or not matched:
            raise InvalidCredentials()

        self._maybe_rehash(user, password)
        return user

    def _maybe_rehash(self, user: User, password: str) -> None:
        # Hasher parameters may have been raised since this hash was made
        if self._ph.check_needs_rehash(user.password_hash):
            self._users.update_password_hash(user, hash_password(self._ph, password))
            logger.info("Re-hashed password for user %s with current parameters", user.id)
