"""
Date/time parsing and zone conversion utilities, framework-agnostic.

Click history arrives from the API as loosely typed values (ISO 8601
strings, sometimes with a trailing ``Z``, or Unix epoch numbers). Everything
is normalised to timezone-aware UTC here before bucketing.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date/time value into a timezone-aware UTC datetime.

    Accepts:
    - ``None`` → ``None``
    - ``datetime`` → converted to UTC (naive values are assumed UTC)
    - ``int`` / ``float`` → treated as Unix epoch seconds
    - ``str`` ending in ``"Z"`` → converted to ``+00:00`` before parsing
    - Any ISO 8601 string (``datetime.fromisoformat``)

    Returns:
        A timezone-aware ``datetime`` in UTC, or ``None`` if *value* is ``None``
        or cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        else:
            raw = str(value).strip()
            if raw.endswith("Z"):
                raw = raw[:-1] + "+00:00"
            dt = datetime.fromisoformat(raw)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def to_display_zone(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert *value* into the display zone.

    ``tz=None`` means the viewer's local zone. Naive values are assumed UTC,
    matching :func:`parse_datetime`.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if tz is None:
        return value.astimezone()
    return value.astimezone(tz)
