"""Timezone helpers. All instants are handled as aware UTC datetimes."""

import datetime as dt
from typing import Optional


def utcnow() -> dt.datetime:
    """Return a timezone-aware UTC timestamp."""
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Normalize naive -> aware (UTC); some backends drop tzinfo on read."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)
