"""
AuthService: the inbound interface of the session subsystem.

    login(email, password, client_context) -> LoginResult
    register(...)                          -> LoginResult
    refresh(refresh_token)                 -> RefreshResult
    logout(refresh_token)                  -> bool (already revoked)
    logout_all(user_id)                    -> int
    is_blacklisted(refresh_token)          -> bool

Stores are injected; nothing here reaches for a module-level default.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from models.user import User
from services.credentials import CredentialValidator, normalize_email
from services.reaper import SessionReaper
from services.refresh import RefreshCoordinator, RefreshResult
from services.revocation import RevocationManager
from services.stores import ClientContext, SessionStore, UserStore
from services.tokens import TokenIssuer
from utils.clock import utcnow
from utils.security import hash_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str
    expires_in: int


class AuthService:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        issuer: TokenIssuer,
        *,
        rotate_refresh_tokens: bool = False,
        reaper_interval: float = 3600.0,
        clock: Callable[[], datetime] = utcnow,
        on_sweep_done: Optional[Callable[[], None]] = None,
    ):
        self.users = users
        self.sessions = sessions
        self.issuer = issuer
        self.validator = CredentialValidator(users)
        self.coordinator = RefreshCoordinator(
            sessions, users, issuer, rotate=rotate_refresh_tokens, clock=clock
        )
        self.revocation = RevocationManager(sessions, clock=clock)
        self.reaper = SessionReaper(
            sessions, interval=reaper_interval, clock=clock, on_sweep_done=on_sweep_done
        )

    def _open_session(self, user: User, client_context: ClientContext) -> LoginResult:
        pair = self.issuer.issue_tokens(user)
        # PersistenceError propagates: no token is handed out unless its session row exists
        self.sessions.create(user.id, pair.refresh_token, client_context, pair.refresh_expires_at)
        logger.info("Session opened", extra={"user_id": user.id, "ip_address": client_context.ip_address})
        return LoginResult(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
        )

    def login(self, email: str, password: str,
              client_context: Optional[ClientContext] = None) -> LoginResult:
        user = self.validator.validate(email, password)
        return self._open_session(user, client_context or ClientContext())

    def register(self, email: str, password: str, *, name: Optional[str] = None,
                 role: str = "donor", client_context: Optional[ClientContext] = None) -> LoginResult:
        """Create the user then open a session exactly as login does."""
        user = self.users.create_user(
            normalize_email(email), hash_password(password), name=name, role=role
        )
        logger.info("User registered", extra={"user_id": user.id, "role": role})
        return self._open_session(user, client_context or ClientContext())

    def refresh(self, refresh_token: str) -> RefreshResult:
        return self.coordinator.refresh(refresh_token)

    def logout(self, refresh_token: str) -> bool:
        return self.revocation.logout_one(refresh_token)

    def logout_all(self, user_id: str) -> int:
        return self.revocation.logout_all(user_id)

    def is_blacklisted(self, refresh_token: str) -> bool:
        return self.revocation.is_blacklisted(refresh_token)
