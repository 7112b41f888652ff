"""ISO-8601 instant parsing/formatting used by the request and response layers.

Accepted input: `YYYY-MM-DDTHH:MM[:SS[.fraction]]` followed by `Z` or `±HH:MM`.
Fractional seconds are truncated to milliseconds. Date-only strings and naive
date-times (no designator) are rejected because an expiry is an absolute instant.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

_ISO_INSTANT = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<hm>\d{2}:\d{2})(?::(?P<sec>\d{2})(?:\.(?P<frac>\d+))?)?"
    r"(?P<tz>[Zz]|[+-]\d{2}:\d{2})"
)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 date-time with offset into an aware UTC datetime.

    Raises:
        ValueError: the string is not a valid ISO-8601 date-time with offset.
    """
    m = _ISO_INSTANT.fullmatch(value)
    if not m:
        raise ValueError("must be an ISO-8601 date-time with a time component and a UTC offset")

    # Millisecond precision: what is stored and compared is exactly what format_instant shows.
    frac = (m.group("frac") or "")[:3].ljust(3, "0")
    tz = m.group("tz").upper()
    tz = "+00:00" if tz == "Z" else tz
    text = f"{m.group('date')}T{m.group('hm')}:{m.group('sec') or '00'}.{frac}{tz}"
    try:
        return datetime.fromisoformat(text).astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"invalid date-time: {exc}") from exc


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def format_instant(value: datetime) -> str:
    """Render as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    return as_utc(value).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def utcnow() -> datetime:
    return truncate_to_millis(datetime.now(timezone.utc))
