"""
Refresh coordinator: exchanges a refresh token for a new access token.

Checks run in a fixed order (signature, session row, revocation, stored
expiry, owning user) and only after all of them pass is anything written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from services.errors import (
    ExpiredTokenError,
    InvalidTokenError,
    RevokedTokenError,
    StoreError,
    UserNotFoundError,
)
from services.stores import ClientContext, SessionStore, UserStore
from services.tokens import TokenIssuer
from utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    access_token: str
    expires_in: int
    # set only when rotation is enabled
    refresh_token: Optional[str] = None


class RefreshCoordinator:
    def __init__(
        self,
        sessions: SessionStore,
        users: UserStore,
        issuer: TokenIssuer,
        *,
        rotate: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sessions = sessions
        self.users = users
        self.issuer = issuer
        self.rotate = rotate
        self.clock = clock

    def refresh(self, refresh_token: str) -> RefreshResult:
        claims = self.issuer.verify_refresh_token(refresh_token)

        session = self.sessions.find_by_refresh_token(refresh_token)
        if session is None:
            raise InvalidTokenError("Invalid refresh token")

        if session.is_revoked:
            logger.warning(
                "Refresh attempted with revoked session",
                extra={"session_id": session.id, "user_id": session.user_id},
            )
            raise RevokedTokenError()

        now = self.clock()
        if session.is_expired(now):
            raise ExpiredTokenError()

        # The row is authoritative for ownership; a mismatching claim means a forged pairing
        if str(claims["userId"]) != str(session.user_id):
            raise InvalidTokenError("Refresh token does not match its session")

        user = self.users.get_user_by_id(session.user_id)
        if user is None:
            logger.error("Session references a missing user", extra={"session_id": session.id})
            raise UserNotFoundError()

        if self.rotate:
            return self._rotate(refresh_token, session, user, now)

        access = self.issuer.issue_access_token(user)
        self._touch(refresh_token, now)
        return RefreshResult(access_token=access.access_token, expires_in=access.expires_in)

    def _rotate(self, refresh_token, session, user, now) -> RefreshResult:
        # The conditional revoke decides which of two concurrent refreshes wins
        already = self.sessions.revoke(refresh_token, now)
        if already is None:
            raise InvalidTokenError("Invalid refresh token")
        if already:
            logger.warning(
                "Concurrent reuse of rotated refresh token",
                extra={"session_id": session.id, "user_id": session.user_id},
            )
            raise RevokedTokenError()
        pair = self.issuer.issue_tokens(user)
        self.sessions.create(
            user.id,
            pair.refresh_token,
            ClientContext(user_agent=session.user_agent, ip_address=session.ip_address),
            pair.refresh_expires_at,
        )
        return RefreshResult(
            access_token=pair.access_token,
            expires_in=pair.expires_in,
            refresh_token=pair.refresh_token,
        )

    def _touch(self, refresh_token: str, now: datetime) -> None:
        """Update last_used_at; a store failure here is logged, not raised."""
        try:
            self.sessions.mark_used(refresh_token, now)
        except StoreError:
            logger.warning("Could not update session last_used_at", exc_info=True)
