"""
Error kinds raised by the session/credential services.

Security-decision errors (AuthError subclasses) are never retried and are
collapsed to a generic message at the HTTP edge. Store errors describe the
durability layer: StoreUnavailableError is transient and safe to retry,
PersistenceError is not.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base for authentication failures."""

    public_message = "Invalid session"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    public_message = "Invalid credentials"
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    default_message = "Invalid refresh token"


class ExpiredTokenError(AuthError):
    default_message = "Refresh token has expired"


class RevokedTokenError(AuthError):
    default_message = "Token has been revoked"


class UserNotFoundError(AuthError):
    default_message = "User not found"


class StoreError(Exception):
    """Base for durability-layer failures."""

    retriable = False


class PersistenceError(StoreError):
    """Constraint violation or non-transient store failure."""


class DuplicateUserError(PersistenceError):
    """A user with the same email already exists."""


class StoreUnavailableError(StoreError):
    """The store did not answer in time; retry with backoff."""

    retriable = True


__all__ = [
    "AuthError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "RevokedTokenError",
    "UserNotFoundError",
    "StoreError",
    "PersistenceError",
    "DuplicateUserError",
    "StoreUnavailableError",
]
