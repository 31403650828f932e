#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the session service models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps, timezone-aware UTC

Notes:
- Timestamps are set in Python (utils.clock.utcnow) rather than with
  server defaults so the in-memory store produces the same values as the
  SQL one.
- SQLite drops tzinfo on the way back; read timestamps through as_utc().
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

from utils.clock import utcnow

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Attribute initialization via kwargs, usable without a DB session
        (the in-memory store builds transient instances this way).
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()
        now = utcnow()
        if getattr(self, "created_at", None) is None:
            self.created_at = now
        if getattr(self, "updated_at", None) is None:
            self.updated_at = now
