from __future__ import annotations

import logging

from models.user import User
from services.errors import InvalidCredentialsError
from services.stores import UserStore
from utils.security import verify_password

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialValidator:
    """Checks an email/password pair against the identity store."""

    def __init__(self, users: UserStore):
        self.users = users

    def validate(self, email: str, password: str) -> User:
        """
        Return the user for a matching email/password.
        Unknown email and wrong password raise the same InvalidCredentialsError,
        and both paths run one argon2 verification.
        """
        user = self.users.get_user_by_email(normalize_email(email or ""))
        stored_hash = user.password_hash if user is not None else None
        if not verify_password(password or "", stored_hash) or user is None:
            logger.info("Login rejected", extra={"reason": "credentials"})
            raise InvalidCredentialsError()
        return user
