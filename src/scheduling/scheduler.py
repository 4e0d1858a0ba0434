import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set

from api.metrics import ACTIVE_REMINDERS, REMINDERS_FIRED_TOTAL, REMINDERS_SCHEDULED_TOTAL
from notifications.dispatcher import NotificationDispatcher
from planner_ai.models import NotificationSettings, ReminderLeadTime, Task
from scheduling.timers import AsyncioTimer, CancellationHandle, Timer

logger = logging.getLogger(__name__)


@dataclass
class ActiveReminder:
    task_id: str
    offset_minutes: int
    label: str
    fire_at: datetime
    handle: Optional[CancellationHandle] = None


class ReminderScheduler:
    """Owns every armed reminder timer and the set of tasks with reminders switched off.

    Per task: unscheduled -> scheduled -> (fired | cancelled) and any -> disabled.
    All mutation happens on the event loop thread, so there is no locking.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        lead_times: Optional[List[ReminderLeadTime]] = None,
        timer: Optional[Timer] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.dispatcher = dispatcher
        self.lead_times = list(lead_times) if lead_times is not None else NotificationSettings().reminder_times
        self.timer = timer or AsyncioTimer()
        self.clock = clock

        self._disabled: Set[str] = set()
        self._active: Dict[str, List[ActiveReminder]] = {}

    def update_settings(self, lead_times: List[ReminderLeadTime]) -> None:
        """New lead times apply from the next schedule call; armed timers are kept."""
        self.lead_times = list(lead_times)

    # --- queries -----------------------------------------------------------

    def are_reminders_enabled(self, task_id: str) -> bool:
        return task_id not in self._disabled

    def active_reminders(self, task_id: str) -> List[ActiveReminder]:
        return list(self._active.get(task_id, []))

    @property
    def active_count(self) -> int:
        return sum(len(v) for v in self._active.values())

    # --- state transitions -------------------------------------------------

    def schedule_task_reminders(self, task: Task) -> int:
        """(Re)arm reminders for `task`; returns how many timers were armed."""
        self.cancel_task_reminders(task.id)

        if task.id in self._disabled:
            logger.info(f"Reminders are disabled for task: {task.title}")
            return 0

        if task.due_date is None:
            logger.debug(f"Cannot schedule reminders for task without due date: {task.title}")
            return 0

        now = self._now_like(task.due_date)
        armed: List[ActiveReminder] = []

        for lead in self.lead_times:
            fire_at = task.due_date - timedelta(minutes=lead.minutes)
            if fire_at <= now:
                logger.info(
                    f"Skipped {lead.label} reminder for task '{task.title}' as it's in the past"
                )
                continue

            delay_s = (fire_at - now).total_seconds()
            reminder = ActiveReminder(
                task_id=task.id,
                offset_minutes=lead.minutes,
                label=lead.label,
                fire_at=fire_at,
            )
            reminder.handle = self.timer.arm(delay_s, self._make_callback(task, reminder))
            armed.append(reminder)
            logger.info(f"Scheduled reminder for task '{task.title}' {lead.label} at {fire_at.isoformat()}")

        if armed:
            self._active[task.id] = armed
        self._record(scheduled=len(armed))
        return len(armed)

    def cancel_task_reminders(self, task_id: str) -> None:
        reminders = self._active.pop(task_id, None)
        if not reminders:
            return
        for r in reminders:
            r.handle.cancel()
        logger.info(f"Cancelled all reminders for task ID: {task_id}")
        self._record()

    def disable_task_reminders(self, task_id: str) -> bool:
        self._disabled.add(task_id)
        self.cancel_task_reminders(task_id)
        return True

    def enable_task_reminders(self, task_id: str, task: Optional[Task] = None) -> bool:
        self._disabled.discard(task_id)
        if task is not None and task.due_date is not None:
            self.schedule_task_reminders(task)
        return True

    def schedule_reminders_for_tasks(self, tasks: Iterable[Task]) -> int:
        tasks = list(tasks or [])
        if not tasks:
            return 0
        armed = 0
        for task in tasks:
            if task.id in self._disabled:
                continue
            armed += self.schedule_task_reminders(task)
        logger.info(f"Scheduled reminders for {len(tasks)} tasks ({armed} timers)")
        return armed

    def forget_task(self, task_id: str) -> None:
        """Task deleted: drop its timers and its disabled mark."""
        self.cancel_task_reminders(task_id)
        self._disabled.discard(task_id)

    def shutdown(self) -> None:
        for task_id in list(self._active):
            self.cancel_task_reminders(task_id)

    # --- internals ---------------------------------------------------------

    def _now_like(self, due: datetime) -> datetime:
        # compare aware with aware and naive with naive
        now = self.clock()
        if due.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone(due.tzinfo)
        elif due.tzinfo is None and now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        return now

    def _make_callback(self, task: Task, reminder: ActiveReminder) -> Callable[[], None]:
        def _fire() -> None:
            self._remove_handle(reminder)
            try:
                REMINDERS_FIRED_TOTAL.inc()
            except Exception:
                pass
            self.dispatcher.notify_task_reminder(task, reminder.label)

        return _fire

    def _remove_handle(self, reminder: ActiveReminder) -> None:
        siblings = self._active.get(reminder.task_id)
        if siblings is None:
            return
        remaining = [r for r in siblings if r is not reminder]
        if remaining:
            self._active[reminder.task_id] = remaining
        else:
            del self._active[reminder.task_id]
        self._record()

    def _record(self, scheduled: int = 0) -> None:
        try:
            if scheduled:
                REMINDERS_SCHEDULED_TOTAL.inc(scheduled)
            ACTIVE_REMINDERS.set(self.active_count)
        except Exception:
            pass
