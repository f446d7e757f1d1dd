from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import get_config, DEV_JWT_SECRET
from .errors import register_error_handlers
from .commands import register_commands
from .refresh_channel import validate_channel
from models import storage  # DBStorage singleton (scoped_session)
from models.refresh_store import RefreshStore, build_refresh_store
from models.user_store import SQLUserStore
from services.auth_flow import AuthFlow
from services.credentials import CredentialVerifier
from services.tokens import TokenIssuer
from utils.security import make_password_hasher

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Auth API",
        "version": "1.0.0",
        "description": "Login, logout, registration and refresh-token rotation for the web application.",
    },
    "basePath": "/",  # blueprints are mounted under /api
    "schemes": ["http", "https"],
    "tags": [{"name": "Auth", "description": "Authentication and authorization"}],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def build_auth_flow(app: Flask, refresh_store: RefreshStore | None = None) -> AuthFlow:
    """Wire the auth core from app.config. A refresh store can be injected (e.g. a fake in tests)."""
    cfg = app.config
    hasher = make_password_hasher(
        time_cost=cfg["ARGON2_TIME_COST"],
        memory_cost=cfg["ARGON2_MEMORY_COST"],
        parallelism=cfg["ARGON2_PARALLELISM"],
    )
    users = SQLUserStore(storage)
    store = refresh_store or build_refresh_store(cfg["REFRESH_STORE_BACKEND"], storage)
    issuer = TokenIssuer(
        store,
        secret=cfg["JWT_SECRET"],
        algorithm=cfg["JWT_ALGORITHM"],
        issuer=cfg.get("JWT_ISSUER"),
        access_ttl=cfg["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=cfg["REFRESH_TOKEN_EXPIRES"],
    )
    return AuthFlow(users, CredentialVerifier(users, hasher), issuer, hasher)


def create_app(config_name: str | None = None, refresh_store: RefreshStore | None = None, **overrides) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` are applied on top of the selected config class, which keeps
    tests from having to define a config class per scenario.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    app.config.update(overrides)
    app.config["REFRESH_TOKEN_CHANNEL"] = validate_channel(app.config["REFRESH_TOKEN_CHANNEL"])
    if not app.debug and not app.testing and app.config["JWT_SECRET"] == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set outside development")

    configure_logging(app)

    # Cross-Origin Resource Sharing; credentials are needed for the refresh cookie
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=app.config["REFRESH_TOKEN_CHANNEL"] == "cookie",
        expose_headers=[app.config["REFRESH_HEADER_NAME"]],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)
    register_commands(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions["auth_flow"] = build_auth_flow(app, refresh_store)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp, url_prefix="/api")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Auth API",
            "docs": "/apidocs/",
            "health": "/api/health",
        }, 200

    return app
