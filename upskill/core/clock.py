from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now, the form every stored timestamp uses"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize aware datetimes from clients to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
