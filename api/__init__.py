import atexit
import logging

import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, check_secrets
from .errors import register_error_handlers
from models.db_storage import DBStorage
from models.session_store import SQLSessionStore, SQLUserStore
from services.auth_service import AuthService
from services.tokens import TokenIssuer
from utils.extensions import AUTH_EXTENSION, STORAGE_EXTENSION

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Session Lifecycle API",
        "version": "1.0.0",
        "description": "Login, refresh-token sessions, revocation and cleanup of expired sessions.",
    },
    "basePath": "/",
    "schemes": ["http"],
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


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config_name: str | None = None, *, users=None, sessions=None, clock=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    ``users`` and ``sessions`` replace the SQL stores (tests pass a
    models.memory_store.MemoryStore for both); ``clock`` replaces utcnow.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    check_secrets(app.config)
    configure_logging(app.config["LOG_LEVEL"])

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = None
    if users is None or sessions is None:
        storage = DBStorage(
            app.config["DATABASE_URL"],
            timeout=app.config["STORE_TIMEOUT_SECONDS"],
            echo=app.config["SQL_ECHO"],
        )
        storage.reload()
        users = SQLUserStore(storage) if users is None else users
        sessions = SQLSessionStore(storage) if sessions is None else sessions
        app.extensions[STORAGE_EXTENSION] = storage

    service_kwargs = {}
    if clock is not None:
        service_kwargs["clock"] = clock
    issuer = TokenIssuer.from_config(app.config, **service_kwargs)
    service = AuthService(
        users,
        sessions,
        issuer,
        rotate_refresh_tokens=app.config["REFRESH_TOKEN_ROTATION"],
        reaper_interval=app.config["SESSION_REAPER_INTERVAL_SECONDS"],
        on_sweep_done=storage.close if storage is not None else None,
        **service_kwargs,
    )
    app.extensions[AUTH_EXTENSION] = service

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")

    if storage is not None:
        # Ensure the DB session is removed at the end of each request/app context
        @app.teardown_appcontext
        def remove_session(exception=None):
            # This calls scoped_session.remove(), preventing connection leaks
            storage.close()

    @app.cli.command("init-db")
    def init_db():
        """Create the users and user_sessions tables."""
        if storage is None:
            raise click.ClickException("No database configured")
        storage.reload()
        click.echo("Tables created")

    @app.cli.command("reap-sessions")
    def reap_sessions():
        """Delete expired sessions once."""
        deleted = service.reaper.sweep()
        click.echo(f"Deleted {deleted} expired session(s)")

    if app.config["SESSION_REAPER_ENABLED"]:
        service.reaper.start()
        atexit.register(service.reaper.stop)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Session Lifecycle API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
