"""
Authentication blueprint:
- POST /api/auth/login
- GET  /api/auth/logout
- POST /api/auth/register
- GET  /api/auth/refreshToken

Views only move data between HTTP and services.auth_flow.AuthFlow:
- the access token is returned in the JSON body
- the refresh token travels on the channel picked in config (see api.refresh_channel)
- core failures are typed and turned into responses by api.errors
"""
from __future__ import annotations

from flask import Blueprint, g, jsonify, current_app, request

from api.refresh_channel import clear_refresh_token, read_refresh_token, token_response
from models.schemas.user import UserLoginSchema
from services.auth_flow import AuthFlow
from services.exceptions import BadRequest
from utils.decorators import check_user_data

bp = Blueprint("auth", __name__, url_prefix="/api/auth")

user_login_schema = UserLoginSchema()


def _flow() -> AuthFlow:
    return current_app.extensions["auth_flow"]


@bp.post("/login")
def login():
    """
    Login a user
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string, description: "The user's email" }
            password: { type: string, description: "The user's password" }
    responses:
      200:
        description: Successful login. The refresh token is set on the configured channel.
        schema:
          type: object
          properties:
            accessToken: { type: string, description: The JWT access token }
      400:
        description: Email and password are required
      401:
        description: Invalid email or password
      500:
        description: Internal server error
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Email and password are required")
    data = user_login_schema.load(payload)
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        raise BadRequest("Email and password are required")

    pair = _flow().login(email, password, presented_refresh=read_refresh_token())
    return token_response(pair.access_token, pair.refresh_token, pair.refresh_expires_in)


@bp.get("/logout")
def logout():
    """
    Logout a user
    ---
    tags:
      - Auth
    responses:
      204:
        description: Successful logout, also when there was no session
      500:
        description: Internal server error
    """
    _flow().logout(read_refresh_token())
    return clear_refresh_token(current_app.response_class(status=204))


@bp.post("/register")
@check_user_data
def register():
    """
    Register a new user
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [nickname, email, password]
          properties:
            nickname: { type: string, description: "The user's nickname" }
            email: { type: string, description: "The user's email" }
            password: { type: string, description: "The user's password" }
    responses:
      201:
        description: User created
        schema:
          type: object
          properties:
            success: { type: string, description: Success message }
      400:
        description: Nickname, email and password are required
      409:
        description: Email already in use
      500:
        description: Internal server error
    """
    data = g.user_data
    user = _flow().register(data["nickname"], data["email"], data["password"])
    return jsonify({"success": f"New user {user.nickname} created!"}), 201


@bp.get("/refreshToken")
def refresh_token():
    """
    Refresh the access token
    ---
    tags:
      - Auth
    description: >
      Exchanges the refresh token held on the configured channel (an HttpOnly
      cookie by default) for a new access token. The refresh token is rotated:
      the presented one stops working and a new one is set.
    responses:
      200:
        description: New access token
        schema:
          type: object
          properties:
            accessToken: { type: string, description: The new JWT access token }
      401:
        description: No refresh token was presented
      403:
        description: Invalid or expired session
      500:
        description: Internal server error
    """
    pair = _flow().refresh(read_refresh_token())
    return token_response(pair.access_token, pair.refresh_token, pair.refresh_expires_in)
