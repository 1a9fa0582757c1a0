"""Parsing of operator-entered start times."""
from __future__ import annotations

import re
from datetime import datetime, timedelta

from homeassistant.util import dt as dt_util

_TIME_ONLY = re.compile(r"^(\d{1,2}):(\d{2})$")
_GERMAN_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})\s+(\d{1,2}):(\d{2})$")


def parse_start_time(value: str | datetime, now: datetime | None = None) -> datetime | None:
    """Parse a start time entered by the operator.

    Accepts "HH:MM" (today, or tomorrow if that time has passed),
    "dd.mm.yyyy HH:MM" and ISO 8601. Naive values are local time. Returns an
    aware datetime or None if the value cannot be parsed.
    """
    now = dt_util.as_local(now or dt_util.now())

    if isinstance(value, datetime):
        parsed: datetime | None = value
    else:
        text = str(value).strip()
        parsed = None

        if match := _TIME_ONLY.match(text):
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour > 23 or minute > 59:
                return None
            parsed = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
            if parsed <= now:
                parsed += timedelta(days=1)
            return parsed

        if match := _GERMAN_DATE.match(text):
            day, month, year, hour, minute = (int(part) for part in match.groups())
            try:
                parsed = datetime(year, month, day, hour, minute)
            except ValueError:
                return None
        else:
            try:
                parsed = dt_util.parse_datetime(text)
            except ValueError:
                return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed
