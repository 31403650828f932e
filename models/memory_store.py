"""
In-memory implementation of both the user and the session store.

Used by the test-suite and for embedding the services without a database.
A single re-entrant lock stands in for the row-level atomicity the SQL
store gets from the database.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Optional

from models.user import User
from models.user_session import UserSession
from services.errors import DuplicateUserError, PersistenceError
from services.stores import ClientContext
from utils.clock import utcnow

_SESSION_FIELDS = (
    "id", "user_id", "refresh_token", "user_agent", "ip_address", "is_revoked",
    "revoked_at", "expires_at", "last_used_at", "created_at", "updated_at",
)
_USER_FIELDS = ("id", "name", "email", "password_hash", "role", "created_at", "updated_at")


def _snapshot(obj, cls, fields):
    return cls(**{name: getattr(obj, name) for name in fields})


class MemoryStore:
    def __init__(self):
        self._data_lock = threading.RLock()
        self.users: Dict[str, User] = {}
        # keyed by refresh token, the lookup key of every session operation
        self.sessions: Dict[str, UserSession] = {}

    # users

    def create_user(self, email: str, password_hash: str, *, name: Optional[str] = None,
                    role: str = "donor") -> User:
        with self._data_lock:
            if any(u.email == email for u in self.users.values()):
                raise DuplicateUserError("create user: email already registered")
            user = User(email=email, password_hash=password_hash, name=name, role=role)
            self.users[user.id] = user
            return _snapshot(user, User, _USER_FIELDS)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._data_lock:
            for user in self.users.values():
                if user.email == email:
                    return _snapshot(user, User, _USER_FIELDS)
            return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        with self._data_lock:
            user = self.users.get(user_id)
            return _snapshot(user, User, _USER_FIELDS) if user else None

    def update_user_role(self, user_id: str, role: str) -> Optional[User]:
        with self._data_lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            user.role = role
            user.updated_at = utcnow()
            return _snapshot(user, User, _USER_FIELDS)

    def delete_user(self, user_id: str) -> bool:
        """Remove the user and, like the FK cascade, all of its sessions."""
        with self._data_lock:
            if self.users.pop(user_id, None) is None:
                return False
            stale = [tok for tok, sess in self.sessions.items() if sess.user_id == user_id]
            for tok in stale:
                self.sessions.pop(tok, None)
            return True

    # sessions

    def create(self, user_id: str, refresh_token: str, client_context: ClientContext,
               expires_at: datetime) -> UserSession:
        with self._data_lock:
            if refresh_token in self.sessions:
                raise PersistenceError("create session: constraint violated")
            if user_id not in self.users:
                raise PersistenceError("create session: unknown user")
            row = UserSession(
                user_id=user_id,
                refresh_token=refresh_token,
                user_agent=client_context.user_agent,
                ip_address=client_context.ip_address,
                is_revoked=False,
                revoked_at=None,
                expires_at=expires_at,
                last_used_at=None,
            )
            self.sessions[refresh_token] = row
            return _snapshot(row, UserSession, _SESSION_FIELDS)

    def find_by_refresh_token(self, refresh_token: str) -> Optional[UserSession]:
        with self._data_lock:
            row = self.sessions.get(refresh_token)
            return _snapshot(row, UserSession, _SESSION_FIELDS) if row else None

    def mark_used(self, refresh_token: str, now: datetime) -> None:
        with self._data_lock:
            row = self.sessions.get(refresh_token)
            if row is not None:
                row.last_used_at = now

    def revoke(self, refresh_token: str, now: datetime) -> Optional[bool]:
        with self._data_lock:
            row = self.sessions.get(refresh_token)
            if row is None:
                return None
            if row.is_revoked:
                return True
            row.is_revoked = True
            row.revoked_at = now
            row.updated_at = now
            return False

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with self._data_lock:
            count = 0
            for row in self.sessions.values():
                if row.user_id == user_id and not row.is_revoked:
                    row.is_revoked = True
                    row.revoked_at = now
                    row.updated_at = now
                    count += 1
            return count

    def delete_expired_before(self, now: datetime) -> int:
        with self._data_lock:
            stale = [tok for tok, row in self.sessions.items() if row.expires_at < now]
            for tok in stale:
                self.sessions.pop(tok, None)
            return len(stale)
