from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from services.errors import InvalidTokenError, StoreError
from services.stores import SessionStore
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class RevocationManager:
    """Revokes sessions. Revocation is permanent; nothing here un-revokes."""

    def __init__(self, sessions: SessionStore, *, clock: Callable[[], datetime] = utcnow):
        self.sessions = sessions
        self.clock = clock

    def logout_one(self, refresh_token: str) -> bool:
        """Revoke one session. Returns True if it had already been revoked."""
        already = self.sessions.revoke(refresh_token, self.clock())
        if already is None:
            raise InvalidTokenError("Token not found")
        return already

    def logout_all(self, user_id: str) -> int:
        """
        Revoke every active session of ``user_id`` and return how many changed.
        A login racing with this call may produce a session that is not caught.
        """
        count = self.sessions.revoke_all_for_user(user_id, self.clock())
        logger.info("Revoked all sessions", extra={"user_id": user_id, "count": count})
        return count

    def is_blacklisted(self, refresh_token: str) -> bool:
        """True for revoked tokens and for tokens the store does not know."""
        try:
            session = self.sessions.find_by_refresh_token(refresh_token)
        except StoreError:
            logger.warning("Blacklist lookup failed, treating token as blacklisted", exc_info=True)
            return True
        if session is None:
            return True
        return bool(session.is_revoked)
