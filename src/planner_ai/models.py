from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    WORK = "Work"
    PERSONAL = "Personal"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    FINANCE = "Finance"
    EDUCATION = "Education"
    OTHER = "Other"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskSource(str, Enum):
    EMAIL = "email"
    EMAIL_FALLBACK = "email-fallback"
    TEXT_INPUT = "text-input"
    TEXT_INPUT_FALLBACK = "text-input-fallback"
    TEXT_INPUT_EMERGENCY_FALLBACK = "text-input-emergency-fallback"


# Single urgency table for every producer: 5 is the most urgent.
URGENCY_LEVELS = {
    "CRITICAL": 5,
    "HIGH": 4,
    "MEDIUM": 3,
    "LOW": 2,
    "NONE": 1,
}

_STATUS_ALIASES = {
    "pending": TaskStatus.PENDING,
    "new": TaskStatus.PENDING,
    "todo": TaskStatus.PENDING,
    "in-progress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
}


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


def normalize_status(value) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    key = str(value or "").strip().lower()
    return _STATUS_ALIASES.get(key, TaskStatus.PENDING)


def normalize_urgency(value) -> int:
    """Coerce an integer or a priority word (High, LOW, ...) into 1..5."""
    if value is None:
        return 3
    if isinstance(value, str):
        key = value.strip().upper()
        if key in URGENCY_LEVELS:
            return URGENCY_LEVELS[key]
        try:
            value = int(key)
        except ValueError:
            return 3
    try:
        return max(1, min(5, int(value)))
    except (TypeError, ValueError, OverflowError) as e:
        # lists, dicts, NaN and Infinity from hand-edited files
        raise ValueError(f"invalid urgency level: {value!r}") from e


class Task(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_task_id)
    title: str = Field(..., min_length=1)
    description: str = ""

    due_date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    urgency_level: int = Field(3, ge=1, le=5)
    category: Category = Category.OTHER
    status: TaskStatus = TaskStatus.PENDING

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    source: TaskSource = TaskSource.TEXT_INPUT
    email_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("description", mode="before")
    @classmethod
    def description_not_null(cls, v):
        return v or ""

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return normalize_status(v)

    @field_validator("urgency_level", mode="before")
    @classmethod
    def coerce_urgency(cls, v):
        return normalize_urgency(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        if isinstance(v, Category):
            return v
        for c in Category:
            if str(v or "").strip().lower() == c.value.lower():
                return c
        return Category.OTHER

    def to_record(self) -> dict:
        """Plain JSON-friendly dict in the persisted (camelCase) layout."""
        return self.model_dump(mode="json", by_alias=True)


class ReminderLeadTime(BaseModel):
    minutes: int = Field(..., gt=0)
    label: str


def _default_reminder_times() -> List[ReminderLeadTime]:
    return [
        ReminderLeadTime(minutes=1440, label="1 day before"),
        ReminderLeadTime(minutes=60, label="1 hour before"),
        ReminderLeadTime(minutes=10, label="10 minutes before"),
    ]


class NotificationSettings(BaseModel):
    task_extraction: bool = True
    task_reminders: bool = True
    system_notifications: bool = True
    sound: bool = True
    desktop_notifications: bool = True
    reminder_times: List[ReminderLeadTime] = Field(default_factory=_default_reminder_times)


class EmailSettings(BaseModel):
    enabled: bool = True
    interval_minutes: float = Field(60, gt=0)
    extract_on_startup: bool = True
    max_emails_to_process: int = Field(50, ge=1)
    # "keywords" skips the model and uses the keyword analyzer
    analysis_mode: Literal["model", "keywords"] = "model"


class AppSettings(BaseModel):
    email_settings: EmailSettings = Field(default_factory=EmailSettings)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)


class SourceItem(BaseModel):
    """One unit of input for extraction: an email or a free-text block."""

    kind: Literal["email", "text"] = "text"
    subject: str = ""
    content: str
    email_id: Optional[str] = None

    @property
    def is_email(self) -> bool:
        return self.kind == "email"


class ParsedFields(BaseModel):
    title: str
    urgency_level: int = 3
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    due_date: Optional[datetime] = None
