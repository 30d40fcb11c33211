from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

PENDING = "pending"
OPEN = "open"
EXPIRED = "expired"


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are read as UTC wall-clock time."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def window_state(starts_at: Optional[datetime], ends_at: Optional[datetime], now: datetime) -> str:
    """Where `now` falls in an optional [starts_at, ends_at] window; both bounds inclusive."""
    now = as_utc(now)
    start = as_utc(starts_at)
    end = as_utc(ends_at)
    if start is not None and start > now:
        return PENDING
    if end is not None and end < now:
        return EXPIRED
    return OPEN
