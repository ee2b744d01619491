"""Local-time helpers shared by the server and the kiosk client."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo

_OFFSET_RE = re.compile(r"^([+-])(\d{1,2})(?::?(\d{2}))?$")


def parse_tz_offset(tz_offset: str) -> timezone:
    """Turn a ``+HH:MM`` / ``-HH:MM`` string into a fixed-offset timezone."""
    match = _OFFSET_RE.match(tz_offset.strip())
    if match is None:
        raise ValueError(f"Invalid timezone offset: {tz_offset!r}")
    sign = 1 if match.group(1) == "+" else -1
    hours = int(match.group(2))
    minutes = int(match.group(3) or 0)
    if hours > 14 or minutes >= 60:
        raise ValueError(f"Invalid timezone offset: {tz_offset!r}")
    return timezone(timedelta(hours=sign * hours, minutes=sign * minutes))


def now_local(tz: tzinfo) -> datetime:
    """Current time in the kiosk's local offset.

    Wrapped so tests can override the clock.
    """
    return datetime.now(tz)


def date_key(day: date) -> str:
    """Storage format for calendar days (YYYY-MM-DD)."""
    return day.isoformat()


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()
