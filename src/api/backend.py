import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Set

from api.metrics import EXTRACTION_ERRORS_TOTAL, TASKS_EXTRACTED_TOTAL
from extraction.task_analyzer import analyze_email
from extraction.task_extractor import TaskExtractor
from extraction.text_source import from_text, to_source_item
from notifications.dispatcher import NotificationDispatcher
from planner_ai.models import EmailSettings, SourceItem, Task
from scheduling.scheduler import ReminderScheduler
from storage.task_store import TaskStore

logger = logging.getLogger(__name__)


class BackendAPI:
    """Central orchestration component of the Planner_AI system.

    extract -> persist -> arm reminders -> notify, one input item at a time.
    """

    def __init__(
        self,
        extractor: TaskExtractor,
        scheduler: ReminderScheduler,
        dispatcher: NotificationDispatcher,
        store: Optional[TaskStore] = None,
        email_settings: Optional[EmailSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.extractor = extractor
        self.scheduler = scheduler
        self.dispatcher = dispatcher
        self.store = store
        self.email_settings = email_settings or EmailSettings()
        self.clock = clock
        # message ids already handed to extraction, task or not
        self._seen_email_ids: Set[str] = set()

    async def extract_from_batch(self, items: Iterable[Any]) -> List[Task]:
        """Extract every item in input order; a failing item is logged and skipped.

        Nothing is persisted here; the summary notification goes out right away.
        """
        tasks = await self._extract_items(items)
        if tasks:
            self.dispatcher.notify_tasks_extracted(tasks)
        return tasks

    async def _extract_items(self, items: Iterable[Any], keywords_only: bool = False) -> List[Task]:
        items = list(items or [])
        if not items:
            return []

        tasks: List[Task] = []
        for index, raw in enumerate(items):
            try:
                item = to_source_item(raw)
                if keywords_only:
                    tasks.append(analyze_email(item, now=self.clock()))
                else:
                    tasks.extend(await self.extractor.extract(item))
            except Exception as e:
                logger.exception(f"Error processing item {index}: {e}")
                try:
                    EXTRACTION_ERRORS_TOTAL.inc()
                except Exception:
                    pass

        for t in tasks:
            try:
                TASKS_EXTRACTED_TOTAL.labels(source=t.source.value).inc()
            except Exception:
                pass
        return tasks

    async def extract_from_text(self, text: str) -> List[Task]:
        if not text or not text.strip():
            logger.warning("Empty text provided to extract_from_text")
            return []

        tasks = await self._extract_items([from_text(text)])
        if not tasks:
            self.dispatcher.notify_system(
                "No task found", "Could not find a task in the provided text.", "warning"
            )
            return []

        return self._persist_and_schedule(tasks)

    async def extract_from_emails(self, messages: Iterable[Any]) -> List[Task]:
        """Extract tasks from mail not processed before, capped at max_emails_to_process."""
        items = self._new_emails(messages)[: self.email_settings.max_emails_to_process]
        logger.info(f"Processing {len(items)} new emails")
        if not items:
            return []

        keywords_only = self.email_settings.analysis_mode == "keywords"
        tasks = await self._extract_items(items, keywords_only=keywords_only)
        logger.info(f"Extracted {len(tasks)} tasks from emails")
        if tasks:
            self._persist_and_schedule(tasks)
        self._seen_email_ids.update(i.email_id for i in items if i.email_id)
        return tasks

    def _new_emails(self, messages: Iterable[Any]) -> List[SourceItem]:
        known = set(self._seen_email_ids)
        if self.store is not None:
            known.update(t.email_id for t in self.store.load_tasks() if t.email_id)

        fresh: List[SourceItem] = []
        for index, raw in enumerate(messages or []):
            try:
                item = to_source_item(raw)
            except TypeError as e:
                logger.error(f"Skipping message {index}: {e}")
                continue
            if item.email_id and item.email_id in known:
                logger.debug(f"Skipping already processed email {item.email_id}")
                continue
            if item.email_id:
                known.add(item.email_id)
            fresh.append(item)
        return fresh

    def _persist_and_schedule(self, tasks: List[Task]) -> List[Task]:
        # save first: a failed save raises before anyone is told about the tasks
        if self.store is not None:
            self.store.save_multiple(tasks)
        self.scheduler.schedule_reminders_for_tasks(tasks)
        self.dispatcher.notify_tasks_extracted(tasks)
        return tasks

    # --- task lifecycle ----------------------------------------------------

    def load_and_schedule(self) -> List[Task]:
        """Re-arm reminders for persisted tasks (timers do not survive a restart)."""
        if self.store is None:
            return []
        tasks = self.store.load_tasks()
        self.scheduler.schedule_reminders_for_tasks(tasks)
        return tasks

    def update_task(self, task_id: str, **changes) -> Task:
        if self.store is None:
            raise RuntimeError("No task store configured")
        before = self.store.get(task_id)
        updated = self.store.update(task_id, **changes)
        if before is None or before.due_date != updated.due_date:
            self.scheduler.schedule_task_reminders(updated)
        return updated

    def delete_task(self, task_id: str) -> bool:
        self.scheduler.forget_task(task_id)
        if self.store is None:
            return True
        return self.store.delete(task_id)
