"""
Declarative base and shared column mixins for all models.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class CreatedAtMixin:
    # Python-side default so the value is usable right after flush
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class TimestampMixin(CreatedAtMixin):
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
