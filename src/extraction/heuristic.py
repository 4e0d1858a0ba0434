"""Regex/keyword task extraction used when the inference endpoint is unavailable."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from planner_ai.models import Task, TaskSource
from extraction.date_resolver import parse_clock, resolve_relative_date
from extraction.task_builder import truncate_description

logger = logging.getLogger(__name__)

_CLAUSE = r"([^.,;!?]+)"

# Order matters: first match wins.
TASK_PATTERNS = [
    re.compile(r"\bI need to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bhave to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bmust " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bshould " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bdon['’]?t forget to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bremember to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bgoing to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"\bplan(?:ning)? to " + _CLAUSE, re.IGNORECASE),
    re.compile(r"([^.,;!?]+?)\s+due\s+(?:by|on)\s+[^.,;!?]+", re.IGNORECASE),
    re.compile(r"([^.,;!?]+?)\s+by\s+[^.,;!?]+", re.IGNORECASE),
    re.compile(r"([^.,;!?]+?)\s+before\s+[^.,;!?]+", re.IGNORECASE),
    re.compile(
        r"^\s*((?:Call|Email|Send|Buy|Book|Schedule|Submit|Finish|Review|Prepare|Pay|"
        r"Pick up|Fix|Write|Update|Check|Clean|Renew|Order|Complete|Read)\b[^.!?]*)"
    ),
    re.compile(r"\b((?:meeting|appointment|call)\s+with\s+[^.,;!?]+)", re.IGNORECASE),
]

SENTENCE_SPLIT_RE = re.compile(r"[.!?]\s")
AT_TIME_RE = re.compile(r"\bat (\d{1,2}(?::\d{2})? ?(?:am|pm))", re.IGNORECASE)
DEADLINE_PHRASE_RE = re.compile(
    r"\b(?:due\s+(?:by|on)|by|before)\s+"
    r"(today|tomorrow|next \w+|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})",
    re.IGNORECASE,
)

URGENCY_RULES = [
    (re.compile(r"urgent|immediately|asap|right away|critical", re.IGNORECASE), 5),
    (re.compile(r"soon|quickly|important", re.IGNORECASE), 4),
    (re.compile(r"sometime|when you can|low priority|eventually", re.IGNORECASE), 2),
]


def find_title(text: str) -> str:
    for pattern in TASK_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1) and m.group(1).strip():
            return m.group(1).strip()

    first_sentence = SENTENCE_SPLIT_RE.split(text)[0].strip()
    if len(first_sentence) > 10:
        return first_sentence
    return text[:50].strip()


def estimate_start(text: str, now: datetime) -> datetime:
    start = now + timedelta(hours=1)
    lowered = text.lower()

    # anchored on `now`, not now+1h
    if "tomorrow" in lowered:
        start = (now + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
    elif "next week" in lowered:
        start = (now + timedelta(days=7)).replace(hour=9, minute=0, second=0, microsecond=0)

    m = AT_TIME_RE.search(text)
    if m:
        start = parse_clock(m.group(1), start) or start
    return start


def estimate_urgency(text: str) -> int:
    for pattern, level in URGENCY_RULES:
        if pattern.search(text):
            return level
    return 3


def _emergency_task(text: str, now: datetime) -> Task:
    title = text[:50] + ("..." if len(text) > 50 else "")
    return Task(
        title=title.strip() or "Untitled task",
        description=text,
        start_time=now,
        end_time=now + timedelta(hours=1),
        urgency_level=3,
        created_at=now,
        source=TaskSource.TEXT_INPUT_EMERGENCY_FALLBACK,
    )


def extract_heuristic(
    text: str,
    now: Optional[datetime] = None,
    source: TaskSource = TaskSource.TEXT_INPUT_FALLBACK,
) -> Task:
    now = now or datetime.now()
    logger.info(f"Using fallback extraction for text: {text[:50]}...")

    try:
        start = estimate_start(text, now)
        deadline = DEADLINE_PHRASE_RE.search(text)
        task = Task(
            title=find_title(text),
            description=truncate_description(text),
            due_date=resolve_relative_date(deadline.group(1), now=now) if deadline else None,
            start_time=start,
            end_time=start + timedelta(hours=1),
            urgency_level=estimate_urgency(text),
            created_at=now,
            source=source,
        )
        logger.info(f"Fallback extraction created task: {task.title}")
        return task
    except Exception as e:
        logger.error(f"Even fallback extraction failed: {e}")
        return _emergency_task(text, now)
