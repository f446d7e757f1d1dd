from __future__ import annotations

import time

import jwt

REFRESH_COOKIE = "jwt"
COOKIE_PATH = "/api/auth"


class FakeClock:
    """Callable clock for stores and issuers; tests move it by hand."""

    def __init__(self, start: float | None = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


def register(client, nickname="Ada", email="ada@x.com", password="pw123"):
    return client.post(
        "/api/auth/register",
        json={"nickname": nickname, "email": email, "password": password},
    )


def login(client, email="ada@x.com", password="pw123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def refresh_cookie(client) -> str | None:
    cookie = client.get_cookie(REFRESH_COOKIE, path=COOKIE_PATH)
    return cookie.value if cookie is not None else None


def present_refresh_cookie(client, token: str) -> None:
    client.set_cookie(REFRESH_COOKIE, token, path=COOKIE_PATH)
