from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Union

from planner_ai.models import URGENCY_LEVELS, ParsedFields
from extraction.date_resolver import parse_clock, resolve_relative_date

logger = logging.getLogger(__name__)

NO_TASK_SENTINEL = "No task found"
DEFAULT_TITLE = "Task from text input"

PRIORITY_RE = re.compile(r"Priority.*?:\s*(CRITICAL|HIGH|MEDIUM|LOW)", re.IGNORECASE)
TIME_RE = re.compile(r"Time.*?:\s*(.+)", re.IGNORECASE)
TIME_RANGE_RE = re.compile(
    r"(\d{1,2}(?::\d{2})?\s*(?:am|pm))\s*(?:to|-)\s*(\d{1,2}(?::\d{2})?\s*(?:am|pm))",
    re.IGNORECASE,
)
DEADLINE_RE = re.compile(r"Deadline.*?:\s*(.+)", re.IGNORECASE)
DATE_TOKEN_RE = re.compile(
    r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
    r"|\w+ \d{1,2}(?:st|nd|rd|th)?, \d{4}"
    r"|\w+ \d{1,2}(?:st|nd|rd|th)?"
    r"|tomorrow|today|next \w+",
    re.IGNORECASE,
)


class NoTaskFound:
    """The model said there is nothing to extract."""

    def __repr__(self) -> str:
        return "NO_TASK_FOUND"


NO_TASK_FOUND = NoTaskFound()


def parse_priority(raw: str) -> int:
    m = PRIORITY_RE.search(raw)
    return URGENCY_LEVELS[m.group(1).upper()] if m else URGENCY_LEVELS["MEDIUM"]


def parse_time_range(raw: str, now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
    m = TIME_RE.search(raw)
    if not m:
        return None, None
    rng = TIME_RANGE_RE.search(m.group(1))
    if not rng:
        return None, None
    return parse_clock(rng.group(1), now), parse_clock(rng.group(2), now)


def parse_deadline(raw: str, now: datetime) -> Optional[datetime]:
    m = DEADLINE_RE.search(raw)
    if not m:
        return None
    token = DATE_TOKEN_RE.search(m.group(1))
    if not token:
        return None
    return resolve_relative_date(token.group(0), now=now)


def parse_task_response(
    raw: str, now: Optional[datetime] = None
) -> Union[ParsedFields, NoTaskFound]:
    if NO_TASK_SENTINEL in raw:
        return NO_TASK_FOUND

    now = now or datetime.now()
    lines = [line.strip() for line in raw.splitlines()]
    title = next((line for line in lines if line), DEFAULT_TITLE)

    start_time, end_time = parse_time_range(raw, now)
    fields = ParsedFields(
        title=title,
        urgency_level=parse_priority(raw),
        start_time=start_time,
        end_time=end_time,
        due_date=parse_deadline(raw, now),
    )
    logger.debug(f"Parsed model response into {fields}")
    return fields
