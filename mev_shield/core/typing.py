"""
Type and time helpers shared by the stores.

SQLModel fields are declared with Python types but at the class level they
are InstrumentedAttribute descriptors; `col` tells the type checker so.
"""

from typing import TYPE_CHECKING, TypeVar
from datetime import datetime, timezone

if TYPE_CHECKING:
    from sqlalchemy.orm.attributes import InstrumentedAttribute

T = TypeVar("T")


def col(attr: T) -> "InstrumentedAttribute[T]":
    """
    Type helper for SQLAlchemy column operations in queries.

    Usage:
        delete(KVEntry).where(col(KVEntry.expires_at) <= now)
    """
    return attr  # type: ignore[return-value]


def utc_now() -> datetime:
    """
    Get current UTC time (timezone-aware).

    Default clock for stats timestamps and KV expiry.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite drops tzinfo on round-trip, so values read back from it are naive.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(ensure_aware(value).timestamp() * 1000)


__all__ = [
    "col",
    "utc_now",
    "ensure_aware",
    "epoch_ms",
]
