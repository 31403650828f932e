from services.auth_service import AuthService, LoginResult
from services.errors import (
    AuthError,
    DuplicateUserError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    RevokedTokenError,
    StoreError,
    StoreUnavailableError,
    UserNotFoundError,
)
from services.refresh import RefreshResult
from services.stores import ClientContext
from services.tokens import TokenIssuer, TokenPair

__all__ = [
    "AuthService",
    "LoginResult",
    "RefreshResult",
    "ClientContext",
    "TokenIssuer",
    "TokenPair",
    "AuthError",
    "DuplicateUserError",
    "ExpiredTokenError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "PersistenceError",
    "RevokedTokenError",
    "StoreError",
    "StoreUnavailableError",
    "UserNotFoundError",
]
