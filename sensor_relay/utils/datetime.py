from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional

__all__ = ["utc_now", "ensure_aware_utc"]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(UTC)


def ensure_aware_utc(dt: datetime | None) -> Optional[datetime]:
    """Attach UTC to naive values read back from SQLite; convert aware ones.

    Firestore returns aware ``DatetimeWithNanoseconds`` values, SQLite drops
    the offset on storage, so everything leaving a store goes through here.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
