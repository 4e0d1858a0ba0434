from __future__ import annotations

import logging
from typing import Callable, List, Literal, Optional, Sequence

from planner_ai.models import NotificationSettings, Task

logger = logging.getLogger(__name__)

NotificationCategory = Literal["info", "warning", "success", "error"]
NotificationSink = Callable[[str, str, str], None]

MAX_TASKS_IN_SUMMARY = 3


def log_sink(title: str, message: str, category: str) -> None:
    logger.info(f"Notification: {title} - {message!r} ({category})")


class NotificationDispatcher:
    """Boundary towards whatever renders notifications (banner, sound, desktop pop-up).

    Decides WHAT to send and whether the user wants it; sinks decide HOW to show it.
    Delivery is fire-and-forget: a failing sink is logged and skipped.
    """

    def __init__(
        self,
        settings: Optional[NotificationSettings] = None,
        sinks: Optional[Sequence[NotificationSink]] = None,
    ):
        self.settings = settings or NotificationSettings()
        self._sinks: List[NotificationSink] = list(sinks) if sinks is not None else [log_sink]

    def add_sink(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    def update_settings(self, settings: NotificationSettings) -> NotificationSettings:
        self.settings = settings
        logger.info(f"Notification settings updated: {settings.model_dump()}")
        return self.settings

    def dispatch(self, title: str, message: str, category: NotificationCategory = "info") -> None:
        for sink in self._sinks:
            try:
                sink(title, message, category)
            except Exception as e:
                logger.error(f"Notification sink {sink!r} failed: {e}")

    def notify_tasks_extracted(self, tasks: Sequence[Task]) -> None:
        if not self.settings.task_extraction or not tasks:
            return

        count = len(tasks)
        title = f"{count} new task{'s' if count != 1 else ''} extracted"
        lines = [f"• {t.title}" for t in tasks[:MAX_TASKS_IN_SUMMARY]]
        if count > MAX_TASKS_IN_SUMMARY:
            lines.append(f"...and {count - MAX_TASKS_IN_SUMMARY} more")
        self.dispatch(title, "\n".join(lines), "success")

    def notify_task_reminder(self, task: Task, label: Optional[str] = None) -> None:
        if not self.settings.task_reminders:
            return

        title = f"Reminder: {task.title}"
        parts = []
        if label:
            parts.append(f"Task due {label}")
        if task.due_date:
            parts.append(f"Due: {task.due_date.strftime('%Y-%m-%d %H:%M')}")
        if task.description:
            desc = task.description
            parts.append(desc[:100] + ("..." if len(desc) > 100 else ""))
        self.dispatch(title, "\n".join(parts), "warning")

    def notify_system(self, title: str, message: str, category: NotificationCategory = "info") -> None:
        if not self.settings.system_notifications:
            return
        self.dispatch(title, message, category)
