"""
Environment-aware configuration.
Values come from the process environment (and .env when present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me-0123456789"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me-0123456789"
# HS256 keys shorter than the digest size are rejected outside dev/testing
MIN_SECRET_BYTES = 32


def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Access and refresh tokens are signed with separate secrets
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_ACCESS_SECRET)
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", DEV_REFRESH_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "session-lifecycle-api")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "3600")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", str(7 * 24 * 3600))))
    REFRESH_TOKEN_ROTATION = _bool_env("REFRESH_TOKEN_ROTATION", "false")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///sessions.db")
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
    SQL_ECHO = _bool_env("SQL_ECHO", "false")

    SESSION_REAPER_ENABLED = _bool_env("SESSION_REAPER_ENABLED", "true")
    SESSION_REAPER_INTERVAL_SECONDS = float(os.getenv("SESSION_REAPER_INTERVAL_SECONDS", "3600"))

    REGISTRATION_ROLES = os.getenv("REGISTRATION_ROLES", "donor,school").split(",")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
    REFRESH_TOKEN_ROTATION = False
    SESSION_REAPER_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    DATABASE_URL = os.getenv("DATABASE_URL")


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


def check_secrets(config) -> None:
    """Refuse to run outside dev/testing with shared or default JWT secrets."""
    if config.get("DEBUG") or config.get("TESTING"):
        return
    access, refresh = config.get("JWT_SECRET"), config.get("JWT_REFRESH_SECRET")
    if access in (None, DEV_ACCESS_SECRET) or refresh in (None, DEV_REFRESH_SECRET):
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must be set in production")
    if access == refresh:
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
    if len(access.encode()) < MIN_SECRET_BYTES or len(refresh.encode()) < MIN_SECRET_BYTES:
        raise RuntimeError(f"JWT secrets must be at least {MIN_SECRET_BYTES} bytes")
    if not config.get("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL must be set in production")
