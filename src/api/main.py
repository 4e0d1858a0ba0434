import asyncio
import logging
import os
import signal
from typing import Optional

from api.backend import BackendAPI
from api.workers import EmailPollingWorker
from classification.task_classifier import TaskClassifier
from extraction.task_extractor import TaskExtractor
from integration.gmail_source import GmailMessageSource
from llm.llm_client import LLMClient, get_provider
from notifications.dispatcher import NotificationDispatcher
from scheduling.scheduler import ReminderScheduler
from storage.settings_store import SettingsStore
from storage.task_store import TaskStore

logger = logging.getLogger(__name__)

GMAIL_TOKEN_PATH = os.getenv("GMAIL_TOKEN_PATH", "token.json").strip()
GMAIL_SCOPE = os.getenv("GMAIL_SCOPE", "https://www.googleapis.com/auth/gmail.readonly")


def _load_gmail_credentials():
    """Authorized-user token written by the (external) login flow, or None."""
    if not GMAIL_TOKEN_PATH or not os.path.exists(GMAIL_TOKEN_PATH):
        return None
    from google.oauth2.credentials import Credentials

    try:
        return Credentials.from_authorized_user_file(GMAIL_TOKEN_PATH, [GMAIL_SCOPE])
    except Exception as e:
        logger.error(f"Could not load Gmail credentials: {e}")
        return None


def build_backend(settings_store: Optional[SettingsStore] = None) -> BackendAPI:
    """Wire the process-wide objects once; everything below gets them injected."""
    settings = (settings_store or SettingsStore()).load()

    llm = LLMClient(provider=get_provider())
    extractor = TaskExtractor(llm_client=llm, classifier=TaskClassifier(llm_client=llm))
    dispatcher = NotificationDispatcher(settings=settings.notification_settings)
    scheduler = ReminderScheduler(
        dispatcher=dispatcher,
        lead_times=settings.notification_settings.reminder_times,
    )
    return BackendAPI(
        extractor=extractor,
        scheduler=scheduler,
        dispatcher=dispatcher,
        store=TaskStore(),
        email_settings=settings.email_settings,
    )


async def run() -> None:
    backend = build_backend()
    tasks = backend.load_and_schedule()
    logger.info(f"Loaded {len(tasks)} tasks, {backend.scheduler.active_count} reminders armed")

    worker = EmailPollingWorker(
        backend=backend,
        source=GmailMessageSource(credentials=_load_gmail_credentials()),
        settings=backend.email_settings,
    )
    worker.start()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    await stop.wait()
    logger.info("Shutdown signal received")
    await worker.stop()
    backend.scheduler.shutdown()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s"
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
