from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Best-effort timestamp parsing for feed values.

    Accepts datetimes, ISO-8601 strings (with or without "Z") and RFC 822
    dates as used by RSS pubDate. Returns None when nothing parses.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)

    t = str(value).strip()
    if not t:
        return None

    iso = t[:-1] + "+00:00" if t.endswith("Z") else t
    try:
        return ensure_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    try:
        dt = parsedate_to_datetime(t)
    except (TypeError, ValueError, IndexError):
        return None
    return ensure_utc(dt) if dt is not None else None
