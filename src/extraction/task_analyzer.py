"""Keyword-only email analysis: priority and due date without the model."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from dateutil import parser as dateutil_parser

from extraction.date_resolver import to_24h
from extraction.task_builder import build_task
from extraction.text_source import NO_SUBJECT
from planner_ai.models import Category, ParsedFields, SourceItem, Task, TaskSource, normalize_urgency

logger = logging.getLogger(__name__)

# checked high, then low, then medium
PRIORITY_KEYWORDS = {
    "High": ["urgent", "asap", "important", "critical", "high priority", "high-priority", "deadline", "emergency"],
    "Low": ["low priority", "low-priority", "whenever", "no rush", "when you have time"],
    "Medium": ["soon", "next week", "medium priority", "medium-priority", "attention"],
}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DATE_RE = re.compile(r"\b(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})\b")
DAY_RE = re.compile(r"\b(today|tomorrow|" + "|".join(WEEKDAYS) + r")\b", re.IGNORECASE)
HHMM_RE = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")
AM_PM_RE = re.compile(r"\b(1[0-2]|0?[1-9])\s*(am|pm|a\.m\.|p\.m\.)(?!\w)", re.IGNORECASE)

NO_SUBJECT_TITLE = "New Task"


def analyze_task_priority(subject: str, body: str) -> int:
    text = f"{subject} {body}".lower()
    for level, keywords in PRIORITY_KEYWORDS.items():
        if any(k in text for k in keywords):
            return normalize_urgency(level)
    return normalize_urgency("Medium")


def _roll_if_past(candidate: datetime, now: datetime) -> datetime:
    return candidate + timedelta(days=1) if candidate < now else candidate


def extract_due_date(subject: str, body: str, now: Optional[datetime] = None) -> datetime:
    """Explicit date, then a day name, then a clock time, else noon tomorrow.

    Weekday names always mean the next such day, never today. A clock time
    already past today moves to tomorrow.
    """
    now = now or datetime.now()
    text = f"{subject} {body}"

    m = DATE_RE.search(text)
    if m:
        try:
            return dateutil_parser.parse(m.group(1))
        except (ValueError, OverflowError):
            logger.info(f"Failed to parse explicit date: {m.group(1)}")

    m = DAY_RE.search(text)
    if m:
        day = m.group(1).lower()
        if day == "today":
            return now
        if day == "tomorrow":
            return now + timedelta(days=1)
        days_ahead = WEEKDAYS.index(day) - now.weekday()
        if days_ahead <= 0:
            days_ahead += 7
        return now + timedelta(days=days_ahead)

    m = HHMM_RE.search(text)
    if m:
        at = now.replace(hour=int(m.group(1)), minute=int(m.group(2)), second=0, microsecond=0)
        return _roll_if_past(at, now)

    m = AM_PM_RE.search(text)
    if m:
        hours, _ = to_24h(int(m.group(1)), 0, m.group(2).replace(".", ""))
        at = now.replace(hour=hours, minute=0, second=0, microsecond=0)
        return _roll_if_past(at, now)

    return (now + timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)


def analyze_email(item: SourceItem, now: Optional[datetime] = None) -> Task:
    now = now or datetime.now()
    body = item.content
    # content is "subject\n\nbody" for mail built from Gmail payloads
    if item.subject and body.startswith(item.subject):
        body = body[len(item.subject):].lstrip("\n")

    fields = ParsedFields(
        title=f"Task: {item.subject}" if item.subject not in ("", NO_SUBJECT) else NO_SUBJECT_TITLE,
        urgency_level=analyze_task_priority(item.subject, body),
        due_date=extract_due_date(item.subject, body, now=now),
    )
    return build_task(
        fields,
        content=body,
        category=Category.OTHER,
        source=TaskSource.EMAIL,
        email_id=item.email_id,
        now=now,
    )


def analyze_emails(items: Iterable[SourceItem], now: Optional[datetime] = None) -> List[Task]:
    return [analyze_email(item, now=now) for item in items]
