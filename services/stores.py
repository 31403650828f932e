"""
Store capabilities the session services depend on.

Implementations are passed in explicitly (see models.session_store for the
SQL ones, models.memory_store for the in-memory one).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from models.user import User
from models.user_session import UserSession


@dataclass(frozen=True)
class ClientContext:
    """Originating client label and network origin, captured at session creation."""
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class SessionStore(Protocol):
    def create(
        self,
        user_id: str,
        refresh_token: str,
        client_context: ClientContext,
        expires_at: datetime,
    ) -> UserSession: ...

    def find_by_refresh_token(self, refresh_token: str) -> Optional[UserSession]: ...

    def mark_used(self, refresh_token: str, now: datetime) -> None: ...

    def revoke(self, refresh_token: str, now: datetime) -> Optional[bool]: ...

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int: ...

    def delete_expired_before(self, now: datetime) -> int: ...


class UserStore(Protocol):
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_user_by_id(self, user_id: str) -> Optional[User]: ...

    def create_user(self, email: str, password_hash: str, *, name: Optional[str] = None,
                    role: str = "donor") -> User: ...
