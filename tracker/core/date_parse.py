from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
import re

DAYS_AGO = re.compile(r"^(\d+)\+?\s*(day|hour|minute|week|month)s?\s*ago$", re.I)
JUST_POSTED = re.compile(r"^(just\s*posted|today|active\s*today)$", re.I)

# Timestamps above this are treated as epoch milliseconds rather than seconds
_EPOCH_MS_THRESHOLD = 10_000_000_000


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_epoch(value: int | float) -> datetime | None:
    try:
        seconds = value / 1000.0 if abs(value) >= _EPOCH_MS_THRESHOLD else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def parse_relative_age(text: str, *, now: datetime | None = None) -> datetime | None:
    """Parse Indeed-style relative ages ("3 days ago", "30+ days ago", "Just posted")."""
    now = _naive_utc(now or datetime.utcnow())
    raw = (text or "").strip()
    if not raw:
        return None

    if JUST_POSTED.match(raw):
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    m = DAYS_AGO.match(raw)
    if not m:
        return None
    value = int(m.group(1))
    unit = m.group(2).lower()
    if unit in ("hour", "minute"):
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if unit == "week":
        delta = timedelta(weeks=value)
    elif unit == "month":
        delta = timedelta(days=30 * value)
    else:
        delta = timedelta(days=value)
    return (now - delta).replace(hour=0, minute=0, second=0, microsecond=0)


def parse_posted_at(value, *, now: datetime | None = None) -> datetime | None:
    """Best-effort conversion of a platform-reported posting date to naive UTC.

    Accepts epoch seconds/milliseconds, ISO-8601 strings, RFC 2822 strings
    ("Mon, 02 Oct 2023 12:00:00 GMT") and relative ages. Returns None when
    nothing matches.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, (int, float)):
        return parse_epoch(value)

    raw = str(value).strip()
    if not raw:
        return None
    if raw.isdigit():
        return parse_epoch(int(raw))

    try:
        return _naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        return _naive_utc(parsedate_to_datetime(raw))
    except (TypeError, ValueError, IndexError):
        pass

    return parse_relative_age(raw, now=now)
