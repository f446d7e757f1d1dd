"""
Token issuing and refresh-token rotation.

Access tokens are stateless JWTs. Refresh tokens are JWTs too, but a
refresh token is only honoured while its jti has a live record in the
refresh store. Because the token stays verifiable after its record is gone,
presenting a correctly signed, unexpired refresh token whose record no
longer exists means it was already rotated out or revoked: that is treated
as theft and every session of the user is revoked.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from models.refresh_store import RefreshStore
from services.exceptions import Internal, InvalidSession, TokenCollision
from utils.security import TokenError, create_token, decode_token, generate_jti

logger = logging.getLogger(__name__)

MAX_MINT_ATTEMPTS = 5


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    user_id: str
    family_id: str
    access_expires_in: int
    refresh_expires_in: int


class TokenIssuer:
    def __init__(
        self,
        store: RefreshStore,
        secret: str,
        algorithm: str = "HS256",
        issuer: Optional[str] = None,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=1),
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self.access_ttl = int(access_ttl.total_seconds())
        self.refresh_ttl = int(refresh_ttl.total_seconds())
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def _mint_access(self, user_id: str, now: int) -> str:
        return create_token(
            user_id, "access", self.access_ttl, self._secret,
            algorithm=self._algorithm, issuer=self._issuer, now=now,
        )

    def _mint_refresh(self, user_id: str, jti: str, family_id: str, now: int) -> str:
        return create_token(
            user_id, "refresh", self.refresh_ttl, self._secret,
            algorithm=self._algorithm, issuer=self._issuer, jti=jti, now=now, fam=family_id,
        )

    def _decode(self, token: str, expected_type: str) -> Dict[str, Any]:
        return decode_token(
            token, self._secret, algorithm=self._algorithm,
            expected_type=expected_type, issuer=self._issuer,
        )

    def _pair(self, user_id: str, jti: str, family_id: str, now: int) -> TokenPair:
        return TokenPair(
            access_token=self._mint_access(user_id, now),
            refresh_token=self._mint_refresh(user_id, jti, family_id, now),
            user_id=user_id,
            family_id=family_id,
            access_expires_in=self.access_ttl,
            refresh_expires_in=self.refresh_ttl,
        )

    def issue(self, user_id: str, family_id: Optional[str] = None) -> TokenPair:
        """Start a session: mint both tokens and persist the refresh record."""
        user_id = str(user_id)
        family_id = family_id or generate_jti()
        now = self._now()
        for _ in range(MAX_MINT_ATTEMPTS):
            jti = generate_jti()
            try:
                self.store.put(user_id, jti, now + self.refresh_ttl, family_id)
            except TokenCollision:
                logger.warning("Refresh token id collision on issue, retrying")
                continue
            return self._pair(user_id, jti, family_id, now)
        raise Internal("Could not mint a unique refresh token")

    def rotate(self, refresh_token: str) -> TokenPair:
        """
        Exchange a live refresh token for a new pair. The presented token is
        unusable afterwards. Raises InvalidSession for anything else.
        """
        try:
            claims = self._decode(refresh_token, "refresh")
        except TokenError as exc:
            logger.info("Refresh rejected: %s", exc)
            raise InvalidSession()

        user_id = str(claims["sub"])
        old_jti = str(claims["jti"])
        now = self._now()
        for _ in range(MAX_MINT_ATTEMPTS):
            new_jti = generate_jti()
            try:
                old = self.store.replace(old_jti, new_jti, now + self.refresh_ttl)
            except TokenCollision:
                logger.warning("Refresh token id collision on rotate, retrying")
                continue
            break
        else:
            raise Internal("Could not mint a unique refresh token")

        if old is None:
            self._revoke_everything(user_id, claims.get("fam"))
            raise InvalidSession()
        if old.user_id != user_id:
            # Signed for one user but recorded for another: never legitimate
            self.store.delete(new_jti)
            self._revoke_everything(user_id, old.family_id)
            self._revoke_everything(old.user_id, old.family_id)
            raise InvalidSession()

        return self._pair(old.user_id, new_jti, old.family_id, now)

    def _revoke_everything(self, user_id: str, family_id: Optional[str]) -> None:
        revoked = self.store.delete_all_for_user(user_id)
        logger.warning(
            "Refresh token reuse detected for user %s (family %s); revoked %d sessions",
            user_id, family_id, revoked,
        )

    def revoke(self, refresh_token: Optional[str]) -> bool:
        """
        Drop the record behind `refresh_token`. Unknown, malformed and expired
        tokens are ignored. Returns True if a record was removed.
        """
        if not refresh_token:
            return False
        try:
            claims = self._decode(refresh_token, "refresh")
        except TokenError:
            return False
        return self.store.delete(str(claims["jti"]))

    def verify_access(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid access token, else raise InvalidSession."""
        try:
            return self._decode(token, "access")
        except TokenError:
            raise InvalidSession()
