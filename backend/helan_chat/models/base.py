"""Declarative base of the primary database"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored by SQLite"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
