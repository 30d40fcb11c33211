from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from storefront.errors import InvalidInput
from storefront.utils.dates import as_utc

_MISSING = object()


def parse_iso8601(value, field: str) -> Optional[datetime]:
    """Blank -> None; naive values are taken as UTC, offsets are converted to UTC."""
    if value in (None, ""):
        return None
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as e:
        raise InvalidInput(f"Invalid datetime format for {field}") from e
    return as_utc(dt)


def parse_decimal(value, field: str, *, minimum=None, maximum=None) -> Decimal:
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise InvalidInput(f"{field} must be a number") from e
    if not d.is_finite():
        raise InvalidInput(f"{field} must be a number")
    if minimum is not None and d < minimum:
        raise InvalidInput(f"{field} must be >= {minimum}")
    if maximum is not None and d > maximum:
        raise InvalidInput(f"{field} must be <= {maximum}")
    return d


def parse_int(value, field: str, *, minimum=None, default=_MISSING) -> int:
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError) as e:
        if default is not _MISSING:
            return default
        raise InvalidInput(f"{field} must be an integer") from e
    if minimum is not None and n < minimum:
        raise InvalidInput(f"{field} must be >= {minimum}")
    return n


def check_window(starts_at, ends_at) -> None:
    if starts_at is not None and ends_at is not None and as_utc(starts_at) > as_utc(ends_at):
        raise InvalidInput("fecha_inicio cannot be later than fecha_fin")


def pick(data: dict, key: str, current):
    """Partial-update helper: absent key keeps the current value."""
    return data[key] if key in data else current
