from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError

from planner_ai.models import Category, ParsedFields, Task, TaskSource, TaskStatus

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LEN = 200
DEFAULT_DURATION = timedelta(hours=1)

PLACEHOLDER_TITLES = {
    TaskSource.EMAIL: "Task from email",
    TaskSource.EMAIL_FALLBACK: "Task from email",
}
DEFAULT_PLACEHOLDER = "Task from text input"


def truncate_description(content: str, limit: int = DESCRIPTION_MAX_LEN) -> str:
    content = content or ""
    return content[:limit] + ("..." if len(content) > limit else "")


def build_task(
    fields: ParsedFields,
    content: str,
    category: Category = Category.OTHER,
    source: TaskSource = TaskSource.TEXT_INPUT,
    email_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Task:
    """Assemble the canonical Task; never returns one without a title."""
    now = now or datetime.now()

    start_time = fields.start_time or fields.due_date
    end_time = fields.end_time
    if start_time is not None and end_time is None:
        end_time = start_time + DEFAULT_DURATION

    title = (fields.title or "").strip() or PLACEHOLDER_TITLES.get(source, DEFAULT_PLACEHOLDER)

    data = dict(
        description=truncate_description(content),
        due_date=fields.due_date,
        start_time=start_time,
        end_time=end_time,
        urgency_level=fields.urgency_level,
        category=category,
        status=TaskStatus.PENDING,
        created_at=now,
        source=source,
        email_id=email_id,
    )
    try:
        return Task(title=title, **data)
    except ValidationError as e:
        logger.warning(f"Task title rejected ({e.error_count()} errors), using placeholder")
        return Task(title=PLACEHOLDER_TITLES.get(source, DEFAULT_PLACEHOLDER), **data)
