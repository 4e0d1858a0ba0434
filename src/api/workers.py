import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Protocol

from api.backend import BackendAPI
from planner_ai.models import EmailSettings, Task

logger = logging.getLogger(__name__)


class MessageSource(Protocol):
    def list_recent(self, max_results: int = 50) -> list: ...


class EmailPollingWorker:
    """Background worker that periodically pulls mail and extracts tasks."""

    def __init__(
        self,
        backend: BackendAPI,
        source: MessageSource,
        settings: Optional[EmailSettings] = None,
    ):
        self.backend = backend
        self.source = source
        self.settings = settings or EmailSettings()
        self.last_run: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> List[Task]:
        logger.info("Running email extraction...")
        self.last_run = datetime.now()

        # list_recent uses blocking HTTP
        messages = await asyncio.to_thread(
            self.source.list_recent, self.settings.max_emails_to_process
        )
        logger.info(f"Fetched {len(messages)} recent emails")
        if not messages:
            return []
        return await self.backend.extract_from_emails(messages)

    async def run_forever(self) -> None:
        logger.info(f"Email polling worker started (every {self.settings.interval_minutes} min)")
        interval_s = self.settings.interval_minutes * 60

        if not self.settings.extract_on_startup:
            await asyncio.sleep(interval_s)

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error during email extraction: {e}")
            await asyncio.sleep(interval_s)

    def start(self) -> None:
        if self.running:
            logger.info("Email extraction already running")
            return
        if not self.settings.enabled:
            logger.info("Email extraction disabled, not starting")
            return
        self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Email extraction stopped")

    async def update_settings(self, settings: EmailSettings) -> EmailSettings:
        old = self.settings
        self.settings = settings
        self.backend.email_settings = settings

        if settings.enabled != old.enabled or (
            settings.enabled and settings.interval_minutes != old.interval_minutes
        ):
            await self.stop()
            if settings.enabled:
                self.start()

        logger.info(f"Email extraction config updated: {settings.model_dump()}")
        return settings
