import asyncio
import base64
from datetime import datetime, timedelta

import pytest

from api.backend import BackendAPI
from extraction.task_extractor import TaskExtractor
from notifications.dispatcher import NotificationDispatcher
from planner_ai.models import EmailSettings, Task, TaskSource
from scheduling.scheduler import ReminderScheduler
from storage.task_store import PersistenceError, TaskStore


class FakeExtractor:
    """One task per item titled after its content; content 'boom' raises, 'nothing' yields none."""

    def __init__(self, due_date=None):
        self.due_date = due_date
        self.seen = []

    async def extract(self, item):
        self.seen.append(item.content)
        text = item.content.strip()
        if text == "boom":
            raise RuntimeError("extraction exploded")
        if text == "nothing":
            return []
        return [Task(title=text, due_date=self.due_date, email_id=item.email_id)]


@pytest.fixture
def dispatcher(sink):
    return NotificationDispatcher(sinks=[sink])


@pytest.fixture
def scheduler(dispatcher, fake_timer, now):
    return ReminderScheduler(dispatcher, timer=fake_timer, clock=lambda: now)


@pytest.fixture
def store(tmp_path):
    return TaskStore(str(tmp_path / "tasks.json"))


def _backend(extractor, scheduler, dispatcher, store=None, **kwargs):
    return BackendAPI(extractor=extractor, scheduler=scheduler, dispatcher=dispatcher, store=store, **kwargs)


def test_batch_isolates_failing_item(scheduler, dispatcher, sink):
    extractor = FakeExtractor()
    backend = _backend(extractor, scheduler, dispatcher)

    tasks = asyncio.run(backend.extract_from_batch(["first", "boom", "third"]))

    assert [t.title for t in tasks] == ["first", "third"]
    assert extractor.seen == ["first", "boom", "third"]
    assert len(sink.notifications) == 1
    assert sink.notifications[0][0] == "2 new tasks extracted"


def test_empty_batch_sends_no_notification(scheduler, dispatcher, sink):
    backend = _backend(FakeExtractor(), scheduler, dispatcher)

    assert asyncio.run(backend.extract_from_batch([])) == []
    assert asyncio.run(backend.extract_from_batch(["nothing"])) == []
    assert sink.notifications == []


def test_summary_overflow(scheduler, dispatcher, sink):
    backend = _backend(FakeExtractor(), scheduler, dispatcher)
    asyncio.run(backend.extract_from_batch([f"t{i}" for i in range(5)]))

    assert sink.notifications[0][1].splitlines()[-1] == "...and 2 more"


def test_text_without_task_warns(scheduler, dispatcher, sink):
    backend = _backend(FakeExtractor(), scheduler, dispatcher)

    assert asyncio.run(backend.extract_from_text("nothing")) == []
    assert sink.notifications == [("No task found", "Could not find a task in the provided text.", "warning")]

    assert asyncio.run(backend.extract_from_text("   ")) == []
    assert len(sink.notifications) == 1


def test_text_tasks_are_persisted_and_scheduled(scheduler, dispatcher, store, fake_timer, now):
    backend = _backend(FakeExtractor(due_date=now + timedelta(days=2)), scheduler, dispatcher, store)

    tasks = asyncio.run(backend.extract_from_text("File taxes"))

    assert [t.title for t in store.load_tasks()] == ["File taxes"]
    assert len(scheduler.active_reminders(tasks[0].id)) == 3
    assert len(fake_timer.pending) == 3


def test_emails_are_capped(scheduler, dispatcher, store):
    extractor = FakeExtractor()
    backend = _backend(
        extractor, scheduler, dispatcher, store,
        email_settings=EmailSettings(max_emails_to_process=2),
    )
    messages = [
        {"id": f"m{i}", "payload": {"headers": [{"name": "Subject", "value": f"S{i}"}]}}
        for i in range(4)
    ]

    tasks = asyncio.run(backend.extract_from_emails(messages))

    assert len(tasks) == 2
    assert len(extractor.seen) == 2
    assert len(store.load_tasks()) == 2


def test_load_and_schedule_rearms_persisted_tasks(scheduler, dispatcher, store, now):
    store.save_tasks([Task(title="Later", due_date=now + timedelta(days=2)), Task(title="Undated")])
    backend = _backend(FakeExtractor(), scheduler, dispatcher, store)

    assert len(backend.load_and_schedule()) == 2
    assert scheduler.active_count == 3


def test_update_task_reschedules_on_due_date_change(scheduler, dispatcher, store, fake_timer, now):
    task = Task(title="Dentist", due_date=now + timedelta(days=2))
    store.save_tasks([task])
    backend = _backend(FakeExtractor(), scheduler, dispatcher, store)
    backend.load_and_schedule()
    first = list(fake_timer.pending)

    backend.update_task(task.id, title="Dentist (moved)")
    assert fake_timer.pending == first

    backend.update_task(task.id, due_date=now + timedelta(minutes=15))
    assert all(h.cancelled for h in first)
    assert [r.offset_minutes for r in scheduler.active_reminders(task.id)] == [10]


def test_delete_task_cancels_reminders(scheduler, dispatcher, store, fake_timer, now):
    task = Task(title="Dentist", due_date=now + timedelta(days=2))
    store.save_tasks([task])
    backend = _backend(FakeExtractor(), scheduler, dispatcher, store)
    backend.load_and_schedule()

    assert backend.delete_task(task.id)
    assert fake_timer.pending == []
    assert store.load_tasks() == []


def test_end_to_end_with_real_extractor(routing_provider_factory, llm_factory, scheduler, dispatcher, store, sink, now):
    provider = routing_provider_factory("Pay electricity bill\nPriority: HIGH\nDeadline: next week", "Finance")
    extractor = TaskExtractor(llm_client=llm_factory(provider), clock=lambda: now)
    backend = _backend(extractor, scheduler, dispatcher, store)

    tasks = asyncio.run(backend.extract_from_text("Remember the electricity bill"))

    assert tasks[0].title == "Pay electricity bill"
    assert tasks[0].category.value == "Finance"
    assert scheduler.active_count == 3
    assert sink.notifications[0] == ("1 new task extracted", "• Pay electricity bill", "success")


def _gmail(msg_id, subject, body=""):
    data = base64.urlsafe_b64encode(body.encode()).decode()
    return {
        "id": msg_id,
        "payload": {"headers": [{"name": "Subject", "value": subject}], "body": {"data": data}},
    }


def test_failed_save_sends_no_success_notice(scheduler, dispatcher, sink, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the data directory should be", encoding="utf-8")
    store = TaskStore(str(blocker / "tasks.json"))
    backend = _backend(FakeExtractor(), scheduler, dispatcher, store)

    with pytest.raises(PersistenceError):
        asyncio.run(backend.extract_from_emails([_gmail("m1", "Pay rent")]))
    with pytest.raises(PersistenceError):
        asyncio.run(backend.extract_from_text("Pay rent"))

    assert sink.notifications == []
    assert scheduler.active_count == 0


def test_emails_failed_to_save_are_retried(scheduler, dispatcher, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    backend = _backend(FakeExtractor(), scheduler, dispatcher, TaskStore(str(blocker / "tasks.json")))
    with pytest.raises(PersistenceError):
        asyncio.run(backend.extract_from_emails([_gmail("m1", "Pay rent")]))

    backend.store = TaskStore(str(tmp_path / "tasks.json"))
    tasks = asyncio.run(backend.extract_from_emails([_gmail("m1", "Pay rent")]))
    assert [t.title for t in tasks] == ["Pay rent"]


def test_already_processed_emails_are_skipped(scheduler, dispatcher, store, sink):
    extractor = FakeExtractor()
    backend = _backend(extractor, scheduler, dispatcher, store)
    messages = [_gmail("m1", "Pay rent"), _gmail("m1", "Pay rent"), _gmail("m2", "nothing")]

    assert len(asyncio.run(backend.extract_from_emails(messages))) == 1
    assert asyncio.run(backend.extract_from_emails(messages)) == []

    # a fresh process only knows what the store knows
    restarted = _backend(extractor, scheduler, dispatcher, store)
    assert asyncio.run(restarted.extract_from_emails(messages[:1])) == []

    assert [t.email_id for t in store.load_tasks()] == ["m1"]
    assert len(sink.notifications) == 1


def test_keyword_mode_uses_analyzer(scheduler, dispatcher, store, now):
    extractor = FakeExtractor()
    backend = _backend(
        extractor, scheduler, dispatcher, store,
        email_settings=EmailSettings(analysis_mode="keywords"),
        clock=lambda: now,
    )

    tasks = asyncio.run(backend.extract_from_emails([_gmail("m7", "URGENT: renew passport", "Office closes at 16:45")]))

    assert extractor.seen == []
    task = tasks[0]
    assert task.title == "Task: URGENT: renew passport"
    assert task.urgency_level == 4
    assert task.due_date == datetime(2026, 3, 10, 16, 45)
    assert task.source is TaskSource.EMAIL
    assert task.email_id == "m7"
    assert task.description == "Office closes at 16:45"
    assert [t.email_id for t in store.load_tasks()] == ["m7"]
