"""
Typed failures raised by the authentication core.

Each class carries the HTTP status and error code the API boundary answers
with, so views never translate them by hand (see api.errors).
"""


class AuthError(Exception):
    status = 500
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details


class BadRequest(AuthError):
    status = 400
    code = "BAD_REQUEST"
    message = "Bad request"


class InvalidCredentials(AuthError):
    status = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"

    def __init__(self):
        # Never say which check failed
        super().__init__()


class MissingRefreshToken(AuthError):
    status = 401
    code = "UNAUTHORIZED"
    message = "Refresh token required"


class InvalidSession(AuthError):
    status = 403
    code = "INVALID_SESSION"
    message = "Invalid or expired session"

    def __init__(self):
        super().__init__()


class Conflict(AuthError):
    status = 409
    code = "CONFLICT"
    message = "Conflict"


class EmailTaken(Conflict):
    message = "Email already registered"


class Internal(AuthError):
    pass


class TokenCollision(Exception):
    """A freshly minted refresh token id already exists in the store."""
