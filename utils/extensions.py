from flask import current_app

from services.auth_service import AuthService

AUTH_EXTENSION = "auth_service"
STORAGE_EXTENSION = "db_storage"


def get_auth_service() -> AuthService:
    """The AuthService wired into the running app by create_app()."""
    return current_app.extensions[AUTH_EXTENSION]
