from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta
from typing import Optional

from dateutil import parser as dateutil_parser

CLOCK_RE = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE)


def to_24h(hours: int, minutes: int, period: str) -> tuple[int, int]:
    period = period.lower()
    if period == "pm" and hours != 12:
        hours += 12
    if period == "am" and hours == 12:
        hours = 0
    return hours, minutes


def parse_clock(text: str, day: datetime) -> Optional[datetime]:
    """`3pm`, `10:30 am` -> `day` at that time of day, or None."""
    m = CLOCK_RE.search(text or "")
    if not m:
        return None
    hours, minutes = to_24h(int(m.group(1)), int(m.group(2) or 0), m.group(3))
    if hours > 23 or minutes > 59:
        return None
    return day.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def add_months(dt: datetime, months: int) -> datetime:
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def resolve_relative_date(text: str, now: Optional[datetime] = None) -> datetime:
    """Best-effort date from a deadline fragment. Never raises.

    Unknown input lands a week from now.
    """
    now = now or datetime.now()
    t = (text or "").strip().lower()

    if t == "today":
        return now
    if t == "tomorrow":
        return now + timedelta(days=1)
    if "next" in t:
        if "week" in t:
            return now + timedelta(days=7)
        if "month" in t:
            return add_months(now, 1)

    if t:
        try:
            # "March 3rd" etc. take the missing parts from today
            return dateutil_parser.parse(text, default=now.replace(second=0, microsecond=0))
        except (ValueError, OverflowError):
            pass

    return now + timedelta(days=7)
