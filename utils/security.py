"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import secrets
import time
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError


class TokenError(Exception):
    """Raised when a JWT fails signature, expiry, type or claim checks."""


def make_password_hasher(time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)


def hash_password(ph: PasswordHasher, password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(ph: PasswordHasher, password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2. A malformed hash counts as a mismatch.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID) with 256 bits of entropy.
    """
    return secrets.token_urlsafe(32)


def now_ts() -> int:
    return int(time.time())


def create_token(
    subject: str,
    token_type: str,
    expires_in: int,
    secret: str,
    algorithm: str = "HS256",
    issuer: str | None = None,
    jti: str | None = None,
    now: int | None = None,
    **extra: Any,
) -> str:
    """
    Build and sign a JWT. `token_type` ends up in the "type" claim so an
    access token can never be replayed as a refresh token and vice versa.
    """
    iat = now if now is not None else now_ts()
    payload = {
        "sub": str(subject),
        "iat": iat,
        "exp": iat + int(expires_in),
        "type": token_type,
        "jti": jti or generate_jti(),
    }
    if issuer:
        payload["iss"] = issuer
    payload.update(extra)
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str,
    secret: str,
    algorithm: str = "HS256",
    expected_type: str = "access",
    issuer: str | None = None,
) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises TokenError on invalid signature/expired jwt.
    expected type must be "access" or "refresh".
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
            options={"require": ["exp", "iat", "sub", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    return decoded
