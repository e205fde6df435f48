from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo, so every backend stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
