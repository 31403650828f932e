"""
UserSession model: one row per issued refresh token (one per device/login).
Fields:
- id (String(36)) primary key
- user_id (String(36)) - FK to users.id, cascades on user delete
- refresh_token - the exact signed token string, unique
- user_agent, ip_address - client context captured at creation
- is_revoked (bool) - only ever goes False -> True
- expires_at - fixed at creation, never extended
- last_used_at - touched on each successful refresh
- revoked_at, created_at, updated_at
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base
from utils.clock import as_utc, utcnow


class UserSession(BaseModel, Base):
    __tablename__ = "user_sessions"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token = Column(Text, nullable=False, unique=True)
    user_agent = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)
    is_revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("ix_user_sessions_user_active", "user_id", "is_revoked"),
    )

    def __repr__(self):
        return f"<UserSession id={self.id} user={self.user_id} revoked={self.is_revoked}>"

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)
