"""UTC helpers. SQLite hands back naive datetimes; treat them as UTC."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(earlier: Optional[datetime], later: datetime) -> Optional[int]:
    """Whole days from ``earlier`` to ``later``; None when ``earlier`` is missing."""
    if earlier is None:
        return None
    return (as_utc(later) - as_utc(earlier)).days
