"""
Refresh token transport, chosen by REFRESH_TOKEN_CHANNEL:

- cookie: HttpOnly cookie scoped to REFRESH_COOKIE_PATH (default)
- header: REFRESH_HEADER_NAME on both request and response
- body:   "refreshToken" in the JSON response, read from the JSON request body

The access token always travels in the JSON body.
"""
from __future__ import annotations

from typing import Optional

from flask import current_app, jsonify, request

CHANNELS = ("cookie", "header", "body")
BODY_FIELD = "refreshToken"


def _channel() -> str:
    return current_app.config["REFRESH_TOKEN_CHANNEL"]


def validate_channel(channel: str) -> str:
    channel = (channel or "").lower()
    if channel not in CHANNELS:
        raise ValueError(f"REFRESH_TOKEN_CHANNEL must be one of {CHANNELS}, got {channel!r}")
    return channel


def read_refresh_token() -> Optional[str]:
    cfg = current_app.config
    channel = _channel()
    if channel == "cookie":
        token = request.cookies.get(cfg["REFRESH_COOKIE_NAME"])
    elif channel == "header":
        token = request.headers.get(cfg["REFRESH_HEADER_NAME"])
    else:
        payload = request.get_json(silent=True) or {}
        token = payload.get(BODY_FIELD) if isinstance(payload, dict) else None
    if not isinstance(token, str):
        return None
    return token.strip() or None


def token_response(access_token: str, token: str, max_age: int, status: int = 200):
    """JSON response carrying the access token, with `token` on the configured channel."""
    cfg = current_app.config
    channel = _channel()
    body = {"accessToken": access_token}
    if channel == "body":
        body[BODY_FIELD] = token
    response = jsonify(body)
    response.status_code = status
    if channel == "cookie":
        response.set_cookie(
            cfg["REFRESH_COOKIE_NAME"],
            token,
            max_age=max_age,
            path=cfg["REFRESH_COOKIE_PATH"],
            secure=cfg["REFRESH_COOKIE_SECURE"],
            httponly=True,
            samesite=cfg["REFRESH_COOKIE_SAMESITE"],
        )
    elif channel == "header":
        response.headers[cfg["REFRESH_HEADER_NAME"]] = token
    return response


def clear_refresh_token(response):
    cfg = current_app.config
    if _channel() == "cookie":
        response.delete_cookie(
            cfg["REFRESH_COOKIE_NAME"],
            path=cfg["REFRESH_COOKIE_PATH"],
            secure=cfg["REFRESH_COOKIE_SECURE"],
            httponly=True,
            samesite=cfg["REFRESH_COOKIE_SAMESITE"],
        )
    return response
