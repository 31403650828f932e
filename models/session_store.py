"""
SQL-backed session and user stores over DBStorage.

Every mutating operation is a single statement followed by a commit, so
row-level atomicity in the database is what serializes concurrent callers.
SQLAlchemy exceptions are translated into services.errors store errors.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

from models.db_storage import DBStorage
from models.user import User
from models.user_session import UserSession
from services.errors import DuplicateUserError, PersistenceError, StoreUnavailableError
from services.stores import ClientContext

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(storage: DBStorage, action: str,
                     integrity_error: type[PersistenceError] = PersistenceError) -> Iterator[None]:
    """Roll back and re-raise SQLAlchemy failures as store errors."""
    try:
        yield
    except IntegrityError as err:
        storage.rollback()
        raise integrity_error(f"{action}: constraint violated") from err
    except (OperationalError, PoolTimeoutError) as err:
        storage.rollback()
        raise StoreUnavailableError(f"{action}: store unavailable") from err
    except DBAPIError as err:
        storage.rollback()
        if err.connection_invalidated:
            raise StoreUnavailableError(f"{action}: connection lost") from err
        raise PersistenceError(f"{action}: database error") from err
    except SQLAlchemyError as err:
        storage.rollback()
        raise PersistenceError(f"{action}: database error") from err


class SQLSessionStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def _session(self):
        return self.storage.get_session()

    def create(self, user_id: str, refresh_token: str, client_context: ClientContext,
               expires_at: datetime) -> UserSession:
        """Insert a session row; a duplicate refresh token raises PersistenceError."""
        row = UserSession(
            user_id=user_id,
            refresh_token=refresh_token,
            user_agent=client_context.user_agent,
            ip_address=client_context.ip_address,
            is_revoked=False,
            expires_at=expires_at,
        )
        with translate_errors(self.storage, "create session"):
            self.storage.new(row)
            self.storage.save()
        return row

    def find_by_refresh_token(self, refresh_token: str) -> Optional[UserSession]:
        with translate_errors(self.storage, "find session"):
            # populate_existing: the identity map may hold a copy loaded before a revoke
            stmt = (
                select(UserSession)
                .where(UserSession.refresh_token == refresh_token)
                .execution_options(populate_existing=True)
            )
            return self._session().execute(stmt).scalar_one_or_none()

    def mark_used(self, refresh_token: str, now: datetime) -> None:
        with translate_errors(self.storage, "mark session used"):
            stmt = (
                update(UserSession)
                .where(UserSession.refresh_token == refresh_token)
                .values(last_used_at=now)
                .execution_options(synchronize_session=False)
            )
            self._session().execute(stmt)
            self.storage.save()

    def revoke(self, refresh_token: str, now: datetime) -> Optional[bool]:
        """
        Flip is_revoked for one session.
        Returns False when this call revoked it, True when it was already
        revoked, None when no session carries the token.
        """
        with translate_errors(self.storage, "revoke session"):
            stmt = (
                update(UserSession)
                .where(UserSession.refresh_token == refresh_token, UserSession.is_revoked.is_(False))
                .values(is_revoked=True, revoked_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            changed = self._session().execute(stmt).rowcount
            self.storage.save()
            if changed:
                return False
            exists = self._session().execute(
                select(UserSession.id).where(UserSession.refresh_token == refresh_token)
            ).first()
            return True if exists else None

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with translate_errors(self.storage, "revoke user sessions"):
            stmt = (
                update(UserSession)
                .where(UserSession.user_id == user_id, UserSession.is_revoked.is_(False))
                .values(is_revoked=True, revoked_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            changed = self._session().execute(stmt).rowcount
            self.storage.save()
            return changed

    def delete_expired_before(self, now: datetime) -> int:
        with translate_errors(self.storage, "delete expired sessions"):
            stmt = (
                delete(UserSession)
                .where(UserSession.expires_at < now)
                .execution_options(synchronize_session=False)
            )
            deleted = self._session().execute(stmt).rowcount
            self.storage.save()
            return deleted


class SQLUserStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def get_user_by_email(self, email: str) -> Optional[User]:
        with translate_errors(self.storage, "get user by email"):
            stmt = select(User).where(User.email == email)
            return self.storage.get_session().execute(stmt).scalar_one_or_none()

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        with translate_errors(self.storage, "get user"):
            return self.storage.get(User, user_id)

    def create_user(self, email: str, password_hash: str, *, name: Optional[str] = None,
                    role: str = "donor") -> User:
        user = User(email=email, password_hash=password_hash, name=name, role=role)
        with translate_errors(self.storage, "create user", DuplicateUserError):
            self.storage.new(user)
            self.storage.save()
        return user

    def delete_user(self, user_id: str) -> bool:
        with translate_errors(self.storage, "delete user"):
            user = self.storage.get(User, user_id)
            if user is None:
                return False
            self.storage.delete(user)
            self.storage.save()
            return True
