from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app

from models.schemas.user import UserCreateSchema
from services.exceptions import InvalidSession

user_create_schema = UserCreateSchema()


def check_user_data(fn):
    """
    Validate a registration body before the view runs.
    Missing or blank nickname/email/password raise marshmallow's
    ValidationError, which the error handlers answer with 400.
    The cleaned data is left on g.user_data.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        payload = request.get_json(silent=True) or {}
        g.user_data = user_create_schema.load(payload)
        return fn(*args, **kwargs)

    return wrapper


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()

            flow = current_app.extensions["auth_flow"]
            try:
                decoded = flow.issuer.verify_access(token)
            except InvalidSession:
                abort(401, description="Invalid or expired access token")

            user = flow.users.get(decoded.get("sub"))
            if not user:
                abort(401, description="Invalid or expired access token")
            g.current_user = user
            g.current_token_jti = decoded.get("jti")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
