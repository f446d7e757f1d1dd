"""
Environment-aware configuration.
Values come from the process environment, with a .env file read on import.
Token lifetimes are timedeltas; the refresh channel and store backend are
plain strings checked at app creation.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_JWT_SECRET = "dev-secret-change-me"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth.db")
    SQL_ECHO = _env_bool("SQL_ECHO", "false")

    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "auth-service")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", "86400")))

    # "sql" keeps refresh tokens in the database, "memory" in-process only
    REFRESH_STORE_BACKEND = os.getenv("REFRESH_STORE_BACKEND", "sql")

    # How the refresh token travels: cookie | header | body
    REFRESH_TOKEN_CHANNEL = os.getenv("REFRESH_TOKEN_CHANNEL", "cookie")
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "jwt")
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/auth")
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "true")
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "Strict")
    REFRESH_HEADER_NAME = os.getenv("REFRESH_HEADER_NAME", "X-Refresh-Token")

    # argon2-cffi defaults (RFC 9106 low-memory profile)
    ARGON2_TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
    ARGON2_MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))
    ARGON2_PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "4"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # Plain http on localhost would drop a Secure cookie
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "false")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_SECRET = "testing-secret-with-enough-length-for-hs256"
    REFRESH_STORE_BACKEND = "sql"
    REFRESH_TOKEN_CHANNEL = "cookie"
    REFRESH_COOKIE_SECURE = False
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8
    ARGON2_PARALLELISM = 1


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
