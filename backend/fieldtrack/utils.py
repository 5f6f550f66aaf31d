from __future__ import annotations

import datetime as dt
from typing import Any, Optional

UTC = dt.timezone.utc


def utcnow() -> dt.datetime:
    return dt.datetime.now(UTC)


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: dt.datetime) -> str:
    """Render ``value`` like JavaScript's ``Date.toISOString()``."""
    value = _as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[dt.datetime]:
    """Parse an ISO-8601 string (``Z`` suffix, offset, naive or bare date) as UTC."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return _as_utc(value)
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min, tzinfo=UTC)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        try:
            day = dt.date.fromisoformat(text)
        except ValueError:
            return None
        return dt.datetime.combine(day, dt.time.min, tzinfo=UTC)
    return _as_utc(parsed)


def normalize_optional(value: Any) -> Any:
    """Collapse blank strings and empty containers to ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (dict, list)) and not value:
        return None
    return value


def is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()
