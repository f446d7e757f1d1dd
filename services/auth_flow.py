"""
The four user-facing authentication operations.

Session lifecycle: anonymous -> authenticated (live refresh record) ->
revoked or expired -> anonymous. Every failure is raised as one of the
typed errors in services.exceptions; the HTTP layer maps them to statuses.
"""
from __future__ import annotations

import logging
from typing import Optional

from argon2 import PasswordHasher

from models.user import User
from models.user_store import SQLUserStore
from services.credentials import CredentialVerifier
from services.exceptions import BadRequest, InvalidCredentials, MissingRefreshToken
from services.tokens import TokenIssuer, TokenPair
from utils.security import hash_password

logger = logging.getLogger(__name__)


class AuthFlow:
    def __init__(
        self,
        users: SQLUserStore,
        verifier: CredentialVerifier,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
    ):
        self.users = users
        self.verifier = verifier
        self.issuer = issuer
        self._ph = hasher

    def register(self, nickname: str, email: str, password: str) -> User:
        """Create a user. No tokens are issued; the client logs in afterwards."""
        if not nickname or not email or not password:
            raise BadRequest("Nickname, email and password are required")
        user = self.users.create(nickname, email, hash_password(self._ph, password))
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str, presented_refresh: Optional[str] = None) -> TokenPair:
        if not email or not password:
            raise BadRequest("Email and password are required")
        try:
            user_id = self.verifier.verify(email, password)
        except InvalidCredentials:
            logger.info("Failed login attempt")
            raise

        # A client that logs in again while holding a refresh token gives that session up
        if presented_refresh:
            self.issuer.revoke(presented_refresh)

        pair = self.issuer.issue(user_id)
        logger.info("User %s logged in (family %s)", user_id, pair.family_id)
        return pair

    def logout(self, refresh_token: Optional[str]) -> None:
        """End the caller's session. Never fails, whether or not a session existed."""
        try:
            removed = self.issuer.revoke(refresh_token)
        except Exception:
            # The caller is logged out either way; the record will expire on its own
            logger.exception("Failed to delete refresh token on logout")
            return
        if removed:
            logger.info("Session revoked on logout")

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise MissingRefreshToken()
        return self.issuer.rotate(refresh_token)
